"""Per-identity conversation state for the cart-confirmation flow."""

from __future__ import annotations

import asyncio
import logging
import unicodedata

from shop_assistant.stores.base import CartStore
from shop_assistant.types import ConversationRecord, Identity, PendingAction

logger = logging.getLogger(__name__)

AFFIRMATIVE_REPLIES = (
    "có",
    "co",
    "đúng",
    "dung",
    "ok",
    "oke",
    "okay",
    "yes",
    "đồng ý",
    "dong y",
    "chắc chắn",
    "chac chan",
    "muốn",
    "muon",
    "thêm",
    "them",
)

CART_ADDED = "Đã thêm sản phẩm vào giỏ hàng thành công!"
CART_FAILED = "Không thể thêm sản phẩm vào giỏ hàng. Vui lòng thử lại sau."
CART_CANCELLED = "Đã hủy thêm sản phẩm vào giỏ hàng. Bạn cần hỗ trợ gì thêm không?"


def _normalize(text: str) -> str:
    return unicodedata.normalize("NFC", text).lower().strip()


def is_affirmative(reply: str) -> bool:
    """Exact or substring match against the affirmative list.

    Substring matching means replies such as "không muốn" also count.
    """
    normalized = _normalize(reply)
    return any(
        normalized == phrase or phrase in normalized
        for phrase in (_normalize(candidate) for candidate in AFFIRMATIVE_REPLIES)
    )


class ConversationStore:
    """In-memory pending actions keyed by user id.

    Concurrent requests from the same identity race on read-then-clear; the
    last write wins.
    """

    def __init__(self) -> None:
        self._records: dict[int, ConversationRecord] = {}
        self._lock = asyncio.Lock()

    async def await_cart_confirmation(
        self, identity: Identity, product_id: int, quantity: int = 1
    ) -> None:
        async with self._lock:
            self._records[identity.user_id] = ConversationRecord(
                pending_action=PendingAction.AWAIT_CART_CONFIRMATION,
                product_id=product_id,
                quantity=quantity,
            )
        logger.info("[conversation] user=%s awaiting cart confirmation for product=%s", identity.user_id, product_id)

    async def peek(self, identity: Identity) -> ConversationRecord:
        async with self._lock:
            return self._records.get(identity.user_id, ConversationRecord())

    async def consume(self, identity: Identity) -> ConversationRecord:
        """Return the pending record and reset the identity to idle."""
        async with self._lock:
            return self._records.pop(identity.user_id, ConversationRecord())

    def __len__(self) -> int:
        return len(self._records)


class CartConfirmationHandler:
    def __init__(self, cart_store: CartStore, conversations: ConversationStore) -> None:
        self.cart_store = cart_store
        self.conversations = conversations

    async def pending(self, identity: Identity) -> ConversationRecord | None:
        record = await self.conversations.peek(identity)
        if record.pending_action is PendingAction.NONE:
            return None
        return record

    async def resolve(self, identity: Identity, reply: str) -> str:
        """Settle the pending confirmation; state is cleared on every path."""
        record = await self.conversations.consume(identity)
        if record.pending_action is not PendingAction.AWAIT_CART_CONFIRMATION or record.product_id is None:
            return CART_CANCELLED
        if not is_affirmative(reply):
            logger.info("[conversation] user=%s declined cart add", identity.user_id)
            return CART_CANCELLED

        try:
            added = await self.cart_store.add_item(identity.user_id, record.product_id, record.quantity)
        except Exception as exc:
            logger.error("[conversation] cart add failed for user=%s: %s", identity.user_id, exc)
            return CART_FAILED
        return CART_ADDED if added else CART_FAILED
