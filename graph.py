from typing import TypedDict, Literal
from langchain_core.runnables import RunnableConfig
from langgraph.graph import StateGraph, START, END
import logging

from services.messages import MessageService
from services.optimizer import analyze_costs
from services.relevance import is_relevant

logger = logging.getLogger(__name__)

NO_CONTENT_REPLY = "Please enter a message or upload files to start a conversation."

IRRELEVANT_FILES_AND_MESSAGE_REPLY = (
    "The uploaded files and message don't appear to be related to cloud cost optimization. "
    "Please upload cloud billing files, usage metrics, or ask FinOps-related questions."
)
IRRELEVANT_FILES_REPLY = (
    "The uploaded files don't appear to be related to cloud cost optimization. "
    "Please upload cloud billing files (AWS, Azure, GCP invoices), usage metrics, "
    "or infrastructure configuration files."
)
IRRELEVANT_MESSAGE_REPLY = (
    "I'm specialized in cloud cost optimization and FinOps. Please ask me about cloud billing, "
    "cost optimization strategies, usage metrics analysis, or upload relevant cloud infrastructure files."
)


class TurnState(TypedDict, total=False):
    user_id: str
    thread_id: str
    probe: str
    comment: str
    plan_text: str
    metrics_text: str
    has_files: bool
    relevant: bool
    context: str
    reply: str


def decline_reply(has_files: bool, comment: str) -> str:
    if has_files and comment.strip():
        return IRRELEVANT_FILES_AND_MESSAGE_REPLY
    if has_files:
        return IRRELEVANT_FILES_REPLY
    return IRRELEVANT_MESSAGE_REPLY


async def classify(state: TurnState, config: RunnableConfig):
    """Run the relevance classifier over the turn's probe text."""
    model = config["configurable"]["relevance_model"]
    relevant = await is_relevant(model, state["probe"])
    logger.info(f"Turn in thread {state['thread_id']} is {'relevant' if relevant else 'irrelevant'}")
    return {"relevant": relevant}


async def load_context(state: TurnState, config: RunnableConfig):
    """Collect earlier relevant messages of the thread."""
    db = config["configurable"]["db"]
    return {"context": MessageService.get_relevant_context(db, state["user_id"], state["thread_id"])}


async def analyze(state: TurnState, config: RunnableConfig):
    """Generate the cost optimization reply."""
    model = config["configurable"]["analysis_model"]
    reply = await analyze_costs(
        model,
        state.get("plan_text", ""),
        state.get("metrics_text", ""),
        state.get("comment", ""),
        state.get("context", "")
    )
    logger.info(f"Cost analysis completed ({len(reply)} chars)")
    return {"reply": reply}


async def decline(state: TurnState):
    """Answer an off-topic turn with a canned reply."""
    return {"reply": decline_reply(state.get("has_files", False), state.get("comment", ""))}


def route_relevance(state: TurnState) -> Literal["load_context", "decline"]:
    return "load_context" if state["relevant"] else "decline"


# Relevant turns are answered by the analysis model, the rest are declined
turn_graph = (
    StateGraph(TurnState)
    .add_node("classify", classify)
    .add_node("load_context", load_context)
    .add_node("analyze", analyze)
    .add_node("decline", decline)
    .add_edge(START, "classify")
    .add_conditional_edges("classify", route_relevance)
    .add_edge("load_context", "analyze")
    .add_edge("analyze", END)
    .add_edge("decline", END)
    .compile()
)
