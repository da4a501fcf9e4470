"""Chat model factories used as FastAPI dependencies."""
import os
from langchain.chat_models import init_chat_model
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage

RELEVANCE_MODEL = os.getenv("RELEVANCE_MODEL", "gpt-4o-mini")
ANALYSIS_MODEL = os.getenv("ANALYSIS_MODEL", "gpt-4o-mini")
SUMMARY_MODEL = os.getenv("SUMMARY_MODEL", "gpt-4o-mini")


def get_relevance_model() -> BaseChatModel:
    """Small, near-deterministic model answering YES or NO."""
    return init_chat_model(RELEVANCE_MODEL, temperature=0.1, max_tokens=10)


def get_analysis_model() -> BaseChatModel:
    return init_chat_model(ANALYSIS_MODEL, temperature=0.3)


def get_summary_model() -> BaseChatModel:
    return init_chat_model(SUMMARY_MODEL, temperature=0.4, max_tokens=600)


def message_text(message: BaseMessage) -> str:
    """Plain text of a model reply, joining content blocks when needed."""
    content = message.content
    if isinstance(content, str):
        return content
    return "".join(
        block if isinstance(block, str) else block.get("text", "")
        for block in content
    )
