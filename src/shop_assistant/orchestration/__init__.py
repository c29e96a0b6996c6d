from .assistant import AssistantReply, ShoppingAssistant
from .conversation import CartConfirmationHandler, ConversationStore, is_affirmative
from .executor import NO_RESULT_MESSAGE, TOTAL_FAILURE_MESSAGE, FanOutExecutor, FanOutOutcome
from .json_utils import parse_json_payload
from .router import QueryRouter
from .synthesizer import ResponseSynthesizer

__all__ = [
    "AssistantReply",
    "CartConfirmationHandler",
    "ConversationStore",
    "FanOutExecutor",
    "FanOutOutcome",
    "NO_RESULT_MESSAGE",
    "QueryRouter",
    "ResponseSynthesizer",
    "ShoppingAssistant",
    "TOTAL_FAILURE_MESSAGE",
    "is_affirmative",
    "parse_json_payload",
]
