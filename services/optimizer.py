"""Cost optimization prompt for the analysis model."""
import logging
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from services.llm import message_text

logger = logging.getLogger(__name__)

ANALYSIS_SYSTEM_PROMPT = "You are a concise, actionable FinOps assistant."

ANALYSIS_PROMPT = """
You are a cloud FinOps expert. Given PLAN/BILLING + USAGE METRICS + optional COMMENT + RELEVANT CONTEXT,
analyze cost drivers and propose optimizations. If appropriate, suggest Cloudflare options
(Workers, R2, KV, D1). Return:

(A) Plain-English summary detailed

(B) JSON array in triple backticks with items:
   {{
     "Area": string,
     "Resource": string,
     "Issue": string,
     "Optimization": string,
     "Cloudflare_Alternative": string
   }}

--- RELEVANT CONTEXT FROM PREVIOUS CONVERSATIONS ---
{context}

--- PLAN / BILLING ---
{plan}

--- USAGE METRICS ---
{metrics}

--- COMMENT ---
{comment}
"""


class CostAnalysisError(RuntimeError):
    """Raised when the analysis model produces no usable answer."""


def build_analysis_prompt(plan: str, metrics: str, comment: str, context: str = "") -> str:
    return ANALYSIS_PROMPT.format(
        context=context or "(no relevant context)",
        plan=plan or "(none provided)",
        metrics=metrics or "(none provided)",
        comment=comment or "(none provided)"
    )


async def analyze_costs(
    model: BaseChatModel,
    plan: str,
    metrics: str,
    comment: str,
    context: str = ""
) -> str:
    """
    Ask the analysis model for cost drivers and optimizations.

    Raises:
        CostAnalysisError: if the model call fails or returns nothing
    """
    prompt = build_analysis_prompt(plan, metrics, comment, context)

    try:
        response = await model.ainvoke([
            SystemMessage(content=ANALYSIS_SYSTEM_PROMPT),
            HumanMessage(content=prompt)
        ])
    except Exception as e:
        logger.error(f"Cost analysis call failed: {e}")
        raise CostAnalysisError("Cost analysis failed") from e

    result = message_text(response).strip()
    if not result:
        raise CostAnalysisError("Empty response from analysis model")

    return result
