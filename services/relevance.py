"""Relevance classifier gating which chat turns reach the cost analysis."""
import logging
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from services.llm import message_text

logger = logging.getLogger(__name__)

# Matched as substrings of the lower-cased text
CLOUD_KEYWORDS = (
    "aws", "azure", "gcp", "cloud", "billing", "invoice", "cost", "usage",
    "metrics", "ec2", "s3", "lambda", "rds", "vm", "storage", "compute",
    "network", "bandwidth", "spend", "plan", "pricing", "reserved", "spot",
    "ondemand", "csv", "json", "xlsx", "xls", "txt", "log", "pdf",
)

CLASSIFIER_INPUT_CHARS = 2000

RELEVANCE_SYSTEM_PROMPT = """You are a cloud cost optimization expert. Analyze if the provided text is related to CLOUD COST OPTIMIZATION, CLOUD BILLING, or CLOUD INFRASTRUCTURE.

Consider these as RELEVANT:
- Cloud provider bills (AWS, Azure, GCP, etc.)
- Usage metrics and cost reports
- Infrastructure as code files
- Cloud resource configurations
- Cost optimization discussions
- Billing and spending analysis
- Any file uploads with cloud context

Consider these as IRRELEVANT:
- Personal documents
- Code files without cloud context
- General IT infrastructure not cloud-specific
- Off-topic conversations

Be PERMISSIVE - if there's any chance it's cloud-related, say YES.
Respond with only "YES" or "NO"."""


def find_keywords(text: str) -> list:
    lower_text = text.lower()
    return [keyword for keyword in CLOUD_KEYWORDS if keyword in lower_text]


async def is_relevant(model: BaseChatModel, text: str) -> bool:
    """
    Decide whether text concerns cloud cost, billing or infrastructure.

    Blank text is rejected and keyword hits are accepted without a model
    call. Only ambiguous text reaches the model, and a failed model call
    counts as relevant so a genuine cost question is never dropped.
    """
    if not text or not text.strip():
        logger.info("Relevance check: empty text")
        return False

    keywords = find_keywords(text)
    if keywords:
        logger.info(f"Relevance check: found cloud keywords {', '.join(keywords)}")
        return True

    logger.info("Relevance check: no keywords, asking the model")

    try:
        response = await model.ainvoke([
            SystemMessage(content=RELEVANCE_SYSTEM_PROMPT),
            HumanMessage(
                content="Is this text about cloud cost optimization, cloud billing, or cloud infrastructure?"
                f"\n\n{text[:CLASSIFIER_INPUT_CHARS]}"
            )
        ])
    except Exception as e:
        logger.error(f"Relevance check failed, treating as relevant: {e}")
        return True

    answer = message_text(response).strip().upper()
    logger.info(f"Relevance model answered {answer!r}")
    return answer.startswith("Y")
