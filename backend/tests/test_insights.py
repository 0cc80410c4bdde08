"""
AI insight tests.

The OpenAI client is never called; tests swap the generator in
app.extensions or hand InsightGenerator a fake client.
"""

import json
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from bizops.models import AiInsight
from bizops.services.insight_service import InsightGenerator, normalize_insight


class FakeGenerator:
    def __init__(self, insights):
        self.insights = insights
        self.calls = []

    def generate(self, sales_data, inventory_data):
        self.calls.append((sales_data, inventory_data))
        return self.insights


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))],
            usage=SimpleNamespace(total_tokens=42),
        )


def _generator_with(completions):
    generator = InsightGenerator(api_key=None, model="test-model")
    generator._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return generator


class TestNormalizeInsight:

    def test_keeps_known_values(self):
        result = normalize_insight({
            "type": "alert", "title": " Restock ", "description": "Order more beans",
            "priority": "high", "actionable": True, "data": {"product_id": 3},
        })

        assert result == {
            "type": "alert",
            "title": "Restock",
            "description": "Order more beans",
            "priority": "high",
            "data": {"product_id": 3, "actionable": True},
        }

    def test_unknown_type_and_priority_fall_back(self):
        result = normalize_insight({"type": "prophecy", "title": "T", "description": "D", "priority": "urgent"})

        assert result["type"] == "recommendation"
        assert result["priority"] == "medium"
        assert result["data"] == {"actionable": False}

    @pytest.mark.parametrize("raw", [
        None,
        "just text",
        {"description": "no title"},
        {"title": "no description"},
        {"title": "   ", "description": "blank title"},
    ])
    def test_unusable_records_dropped(self, raw):
        assert normalize_insight(raw) is None


class TestInsightGenerator:

    def test_no_api_key_returns_empty(self):
        assert InsightGenerator(api_key=None, model="m").generate([], []) == []

    def test_parses_json_response(self):
        completions = FakeCompletions(content=json.dumps({"insights": [{"title": "A", "description": "B"}]}))
        generator = _generator_with(completions)

        result = generator.generate([{"date": "2026-10-01", "total_cents": 100, "count": 1}], [])

        assert result == [{"title": "A", "description": "B"}]
        assert completions.kwargs["model"] == "test-model"
        assert completions.kwargs["response_format"] == {"type": "json_object"}
        assert "2026-10-01" in completions.kwargs["messages"][1]["content"]

    def test_api_error_returns_empty(self):
        generator = _generator_with(FakeCompletions(error=OpenAIError("service unavailable")))

        assert generator.generate([], []) == []

    def test_invalid_json_returns_empty(self):
        generator = _generator_with(FakeCompletions(content="not json at all"))

        assert generator.generate([], []) == []

    def test_missing_insights_list_returns_empty(self):
        generator = _generator_with(FakeCompletions(content=json.dumps({"insights": "none"})))

        assert generator.generate([], []) == []


class TestInsightRoutes:

    def test_generate_stores_normalized_insights(self, app, client, admin_headers, make_product, db_session, monkeypatch):
        product = make_product("Low", quantity=2, low_stock_threshold=5)
        fake = FakeGenerator([
            {"type": "alert", "title": "Reorder Low", "description": "Stock is at 2", "priority": "high"},
            {"title": "Missing description"},
        ])
        monkeypatch.setitem(app.extensions, "insight_generator", fake)

        resp = client.post("/api/ai/generate-insights", headers=admin_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert [i["title"] for i in body] == ["Reorder Low"]
        assert db_session.query(AiInsight).count() == 1

        _, inventory = fake.calls[0]
        assert inventory[0]["id"] == product.id
        assert inventory[0]["quantity"] == 2

    def test_generate_without_generator_results(self, app, client, admin_headers, db_session, monkeypatch):
        monkeypatch.setitem(app.extensions, "insight_generator", FakeGenerator([]))

        resp = client.post("/api/ai/generate-insights", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.get_json() == []
        assert db_session.query(AiInsight).count() == 0

    def test_list_and_mark_read(self, client, admin_headers, db_session):
        insight = AiInsight(type="forecast", title="Busy week", description="Expect more orders", priority="low", is_read=False)
        db_session.add(insight)
        db_session.commit()

        listed = client.get("/api/ai/insights", headers=admin_headers).get_json()
        assert [i["id"] for i in listed] == [insight.id]

        resp = client.post(f"/api/ai/insights/{insight.id}/read", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.get_json()["is_read"] is True

        assert client.post("/api/ai/insights/9999/read", headers=admin_headers).status_code == 404

    def test_standard_tier_gets_402(self, client, sales_headers):
        assert client.post("/api/ai/generate-insights", headers=sales_headers).status_code == 402
