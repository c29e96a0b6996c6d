import pytest
from conftest import (
    SAMPLE_ORDER,
    SAMPLE_PRODUCT,
    FakeCommerceStore,
    FakeGraphStore,
    FakeWebSearch,
    ScriptedInferenceProvider,
    run,
)

from shop_assistant.agents import (
    GraphQueryAgent,
    KnowledgeBaseAgent,
    OrderHistoryAgent,
    ProductCatalogAgent,
    PromotionAgent,
    WebSearchAgent,
)
from shop_assistant.agents.formatting import format_datetime, format_vnd
from shop_assistant.agents.graph_query import GENERATION_FAILED, NO_ROWS
from shop_assistant.agents.order import LOGIN_REQUIRED, NO_ORDERS
from shop_assistant.agents.product import NAME_NOT_FOUND, extract_product_name
from shop_assistant.agents.web_search import COMPARISON_UNPARSABLE, UNAVAILABLE
from shop_assistant.errors import InferenceError, ProviderOverloadError
from shop_assistant.gateway import InferenceClient
from shop_assistant.retrieval import SemanticResultCache
from shop_assistant.retrieval.cache import STALE_NOTE
from shop_assistant.types import Identity, ProductOffer, Query

USER = Identity(user_id=42)


def test_format_helpers() -> None:
    assert format_vnd(15990000) == "15.990.000 VND"
    assert format_vnd("1200000.0") == "1.200.000 VND"
    assert format_datetime("2024-05-01T10:30:00") == "10:30:00 01/05/2024"


def test_order_agent_requires_identity() -> None:
    store = FakeCommerceStore(orders={42: [SAMPLE_ORDER]})
    agent = OrderHistoryAgent(store)

    result = run(agent.get_context(Query("đơn hàng của tôi")))

    assert result.text == LOGIN_REQUIRED
    assert not result.is_error
    assert store.order_requests == []


def test_order_agent_reads_only_callers_orders() -> None:
    store = FakeCommerceStore(orders={42: [SAMPLE_ORDER], 7: [{**SAMPLE_ORDER, "id": 5}]})
    agent = OrderHistoryAgent(store)

    result = run(agent.get_context(Query("đơn hàng của tôi", identity=USER)))

    assert store.order_requests == [42]
    assert "Đơn #1001" in result.text
    assert "15.990.000 VND" in result.text
    assert "Đã thanh toán" in result.text
    assert "Đơn #5" not in result.text


def test_order_agent_without_orders() -> None:
    agent = OrderHistoryAgent(FakeCommerceStore())
    assert run(agent.get_context(Query("đơn của tôi", identity=USER))).text == NO_ORDERS


def test_order_relevance_needs_personal_context() -> None:
    agent = OrderHistoryAgent(FakeCommerceStore())
    assert agent.is_relevant(Query("đơn hàng của tôi đã giao chưa"))
    assert not agent.is_relevant(Query("quy trình đặt đơn hàng"))


def test_promotion_agent_formats_discount_types() -> None:
    store = FakeCommerceStore(
        promotions=[
            {"code": "SALE10", "description": "Giảm mùa hè", "discount_type": "percentage", "discount_value": 10.0},
            {"code": "FIX500", "description": "Giảm thẳng", "discount_type": "fixed", "discount_value": 500000},
        ]
    )
    result = run(PromotionAgent(store).get_context(Query("có mã khuyến mãi nào không")))

    assert "• Mã `SALE10`: Giảm mùa hè (Giảm 10%)" in result.text
    assert "• Mã `FIX500`: Giảm thẳng (Giảm 500.000 VND)" in result.text


@pytest.mark.parametrize(
    "text, expected",
    [
        ("cho tôi xem laptop Dell XPS 13", "Dell XPS 13"),
        ("thông số Dell XPS 13 thế nào", "Dell XPS 13"),
        ("tôi muốn tham khảo Lenovo ThinkPad", "Lenovo ThinkPad"),
        ("giá macbook air bao nhiêu", "macbook air bao"),
        ("cho mình hỏi về MSI Katana", "MSI Katana"),
        ("Asus Zenbook còn hàng không?", "Asus Zenbook còn"),
        ("xin chào", None),
    ],
)
def test_product_name_extraction(text, expected) -> None:
    assert extract_product_name(text) == expected


def test_product_general_mention_returns_offer_for_authenticated_caller() -> None:
    store = FakeCommerceStore(products=[SAMPLE_PRODUCT])
    agent = ProductCatalogAgent(store)

    result = run(agent.get_context(Query("laptop Dell XPS 13", identity=USER)))

    assert result.is_structured
    offer = result.payload
    assert isinstance(offer, ProductOffer)
    assert offer.product_id == 7
    assert offer.awaiting_confirmation
    payload = offer.to_payload()
    assert payload["isProductDisplay"] is True
    assert payload["awaitingCartConfirmation"] is True
    assert payload["productId"] == 7


def test_product_offer_for_anonymous_caller_does_not_await_confirmation() -> None:
    agent = ProductCatalogAgent(FakeCommerceStore(products=[SAMPLE_PRODUCT]))

    offer = run(agent.get_context(Query("laptop Dell XPS 13"))).payload

    assert isinstance(offer, ProductOffer)
    assert not offer.awaiting_confirmation
    assert "đăng nhập" in offer.text


def test_product_detail_request_returns_text() -> None:
    agent = ProductCatalogAgent(FakeCommerceStore(products=[SAMPLE_PRODUCT]))

    result = run(agent.get_context(Query("cấu hình laptop Dell XPS 13", identity=USER)))

    assert not result.is_structured
    assert "CPU: Intel Core i7-1360P" in result.text
    assert "HDD: Không có thông tin" in result.text
    assert "32.990.000 VND" in result.text


def test_product_without_name_asks_for_one() -> None:
    store = FakeCommerceStore(products=[SAMPLE_PRODUCT])
    result = run(ProductCatalogAgent(store).get_context(Query("tư vấn giúp mình")))

    assert result.text == NAME_NOT_FOUND
    assert store.searches == []


def _graph_agent(gateway, script, store):
    provider = ScriptedInferenceProvider(script)
    return GraphQueryAgent(InferenceClient(provider, gateway), store), provider


def test_graph_agent_runs_generated_query_and_coerces_numbers(gateway) -> None:
    store = FakeGraphStore(
        rows=[{"id": 3, "name": "HP Victus", "brand": "HP", "price": "18990000", "display_inches": 15.6}]
    )
    cypher = "```cypher\nMATCH (p:Product) RETURN p LIMIT 5\n```"
    agent, provider = _graph_agent(gateway, [cypher], store)

    result = run(agent.get_context(Query("laptop gaming dưới 20 triệu")))

    assert store.queries == ["MATCH (p:Product) RETURN p LIMIT 5"]
    assert provider.calls[0]["model_id"] == "gpt-4o"
    assert provider.calls[0]["temperature"] == 0.0
    assert "Giá: 18.990.000 VND" in result.text
    assert "Màn hình: 15.6 inch" in result.text
    assert "ID: 3" in result.text


def test_graph_agent_never_runs_failed_or_empty_generation(gateway) -> None:
    store = FakeGraphStore()
    agent, _ = _graph_agent(gateway, [InferenceError("boom"), "   "], store)

    assert run(agent.get_context(Query("gợi ý laptop"))).text == GENERATION_FAILED
    assert run(agent.get_context(Query("gợi ý laptop"))).text == GENERATION_FAILED
    assert store.queries == []


def test_graph_agent_rejects_write_queries(gateway) -> None:
    store = FakeGraphStore()
    agent, _ = _graph_agent(gateway, ["MATCH (p) DETACH DELETE p"], store)

    assert run(agent.get_context(Query("xoá hết"))).text == GENERATION_FAILED
    assert store.queries == []


def test_graph_agent_without_rows(gateway) -> None:
    agent, _ = _graph_agent(gateway, ["MATCH (p:Product) RETURN p LIMIT 5"], FakeGraphStore())
    assert run(agent.get_context(Query("laptop trên 90 triệu"))).text == NO_ROWS


def test_knowledge_base_agent_caches_results(embedder, vector_store) -> None:
    cache = SemanticResultCache()
    agent = KnowledgeBaseAgent(cache, embedder, vector_store, top_k=1)

    first = run(agent.get_context(Query("chính sách đổi trả thế nào")))
    second = run(agent.get_context(Query("chính sách đổi trả thế nào?")))

    assert "15 ngày" in first.text
    assert second.text == first.text
    assert cache.stats()["hits"] == 1


class _OverloadedEmbedder:
    async def embed(self, text: str) -> list[float]:
        raise ProviderOverloadError("429", attempts=4)


def test_knowledge_base_agent_serves_stale_entry_under_overload(vector_store) -> None:
    cache = SemanticResultCache()
    run(cache.put("chính sách bảo hành laptop", "Bảo hành 12 tháng"))
    agent = KnowledgeBaseAgent(cache, _OverloadedEmbedder(), vector_store)

    result = run(agent.get_context(Query("trả góp lãi suất")))

    assert result.text.startswith("Bảo hành 12 tháng")
    assert STALE_NOTE in result.text


def test_knowledge_base_agent_reraises_overload_without_cache(vector_store) -> None:
    agent = KnowledgeBaseAgent(SemanticResultCache(), _OverloadedEmbedder(), vector_store)

    with pytest.raises(ProviderOverloadError):
        run(agent.get_context(Query("trả góp lãi suất")))


def test_web_search_prefers_provider_answer() -> None:
    web = FakeWebSearch(
        {
            "answer": "SSD là ổ lưu trữ thể rắn.",
            "results": [
                {"title": "a", "url": "https://a.example", "content": "x"},
                {"title": "b", "url": "https://b.example", "content": "y"},
                {"title": "c", "url": "https://c.example", "content": "z"},
            ],
        }
    )
    result = run(WebSearchAgent(web).get_context(Query("bạn có thể cho tôi biết SSD là gì")))

    assert web.searches == ["SSD là gì"]
    assert result.text == "SSD là ổ lưu trữ thể rắn.\n\nNguồn: https://a.example, https://b.example"


def test_web_search_falls_back_to_snippets() -> None:
    web = FakeWebSearch(
        {"answer": None, "results": [{"title": "RAM", "url": "https://r.example", "content": "r" * 300}]}
    )
    result = run(WebSearchAgent(web).get_context(Query("RAM là gì")))

    assert result.text.startswith("Thông tin từ internet:")
    assert "r" * 200 + "..." in result.text
    assert "r" * 201 not in result.text


def test_web_search_comparison_uses_template_without_live_search() -> None:
    web = FakeWebSearch()
    agent = WebSearchAgent(web)

    result = run(agent.get_context(Query("so sánh Intel Core i7 và AMD Ryzen 7")))
    unparsable = run(agent.get_context(Query("DDR4 với DDR5 khác nhau thế nào")))

    assert web.searches == []
    assert result.text.startswith("So sánh Intel Core i7 và AMD Ryzen 7:")
    assert "Hiệu năng" in result.text
    assert unparsable.text == COMPARISON_UNPARSABLE


def test_web_search_without_provider() -> None:
    agent = WebSearchAgent(None)
    assert agent.overrides_router
    assert agent.is_relevant(Query("SSD là gì"))
    assert run(agent.get_context(Query("SSD là gì"))).text == UNAVAILABLE
