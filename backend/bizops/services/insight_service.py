# Overview: AI insight generation over recent sales and stock; persists advisory records.

"""
Insight Service

The generator is an adapter over the OpenAI chat completions API. It is
advisory only: any failure (no key, network, bad JSON) is logged and
produces an empty list, never an error response.

The active generator lives in app.extensions["insight_generator"] so it
can be swapped without touching the routes.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from flask import current_app
from openai import OpenAI, OpenAIError

from ..extensions import db
from ..models import AiInsight
from ..validation import NotFoundError
from . import catalog_service, reporting_service

logger = logging.getLogger(__name__)

INSIGHT_TYPES = {"recommendation", "alert", "forecast"}
INSIGHT_PRIORITIES = {"low", "medium", "high"}

SYSTEM_PROMPT = (
    "You are an AI business analyst expert. Provide actionable insights "
    "based on business data. Always respond with valid JSON."
)

USER_PROMPT = """Analyze the following business data and provide actionable insights:

Sales Data: {sales}
Inventory Data: {inventory}

Generate business insights in the following JSON format:
{{
  "insights": [
    {{
      "type": "recommendation|alert|forecast",
      "title": "Brief title",
      "description": "Detailed description with specific actions",
      "priority": "low|medium|high",
      "actionable": true,
      "data": {{}}
    }}
  ]
}}

Focus on inventory management (low stock, overstocking, reorder points),
sales trends and forecasting, and revenue optimization opportunities.
Amounts are integer cents."""


class InsightGenerator:
    """OpenAI-backed insight generator."""

    def __init__(self, api_key: Optional[str], model: str, timeout: float = 30.0):
        self.model = model
        self._client: Optional[OpenAI] = None
        if api_key:
            self._client = OpenAI(api_key=api_key, timeout=timeout)

    @classmethod
    def from_config(cls, config) -> "InsightGenerator":
        return cls(
            api_key=config.get("OPENAI_API_KEY"),
            model=config.get("OPENAI_MODEL", "gpt-4o-mini"),
            timeout=config.get("OPENAI_TIMEOUT", 30.0),
        )

    def generate(self, sales_data: list[dict], inventory_data: list[dict]) -> list[dict]:
        """
        Ask the model for insights.

        Returns:
            Raw insight dicts as returned by the model, [] on any failure
        """
        if self._client is None:
            logger.warning("OpenAI API key not configured; skipping insight generation")
            return []

        prompt = USER_PROMPT.format(
            sales=json.dumps(sales_data, default=str),
            inventory=json.dumps(inventory_data, default=str),
        )

        try:
            response = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                max_tokens=1500,
            )
            content = response.choices[0].message.content or '{"insights": []}'
            result = json.loads(content)
        except OpenAIError as e:
            logger.error(f"OpenAI insight request failed: {e}", exc_info=True)
            return []
        except ValueError as e:
            logger.error(f"OpenAI insight response was not valid JSON: {e}", exc_info=True)
            return []

        insights = result.get("insights") if isinstance(result, dict) else None
        if not isinstance(insights, list):
            logger.warning("OpenAI insight response had no insights list")
            return []

        logger.info(
            "Generated %d insight(s), model=%s, tokens=%s",
            len(insights), self.model, response.usage.total_tokens if response.usage else 0,
        )
        return insights


def get_generator():
    generator = current_app.extensions.get("insight_generator")
    if generator is None:
        generator = InsightGenerator.from_config(current_app.config)
        current_app.extensions["insight_generator"] = generator
    return generator


def normalize_insight(raw: Any) -> Optional[dict]:
    """
    Coerce one model-produced record into the stored shape.

    Records without a usable title and description are dropped (None).
    Unknown types fall back to "recommendation", unknown priorities to
    "medium".
    """
    if not isinstance(raw, dict):
        return None

    title = raw.get("title")
    description = raw.get("description")
    if not isinstance(title, str) or not title.strip():
        return None
    if not isinstance(description, str) or not description.strip():
        return None

    insight_type = raw.get("type")
    if insight_type not in INSIGHT_TYPES:
        insight_type = "recommendation"
    priority = raw.get("priority")
    if priority not in INSIGHT_PRIORITIES:
        priority = "medium"

    data = raw.get("data")
    if not isinstance(data, dict):
        data = {}
    data["actionable"] = bool(raw.get("actionable", False))

    return {
        "type": insight_type,
        "title": title.strip()[:255],
        "description": description.strip(),
        "priority": priority,
        "data": data,
    }


def generate_insights() -> list[AiInsight]:
    """Feed 30 days of sales plus the low-stock list to the generator and store the results."""
    sales = reporting_service.sales_analytics(30)
    inventory = [
        {**p.to_summary(), "quantity": p.quantity, "low_stock_threshold": p.low_stock_threshold}
        for p in catalog_service.list_low_stock_products()
    ]

    raw_insights = get_generator().generate(sales, inventory)

    created = []
    for raw in raw_insights:
        normalized = normalize_insight(raw)
        if normalized is None:
            continue
        insight = AiInsight(is_read=False, **normalized)
        db.session.add(insight)
        created.append(insight)

    if created:
        db.session.commit()
    current_app.logger.info("Stored %d of %d generated insight(s)", len(created), len(raw_insights))
    return created


def list_insights(limit: int = 50) -> list[AiInsight]:
    return (
        db.session.query(AiInsight)
        .order_by(AiInsight.created_at.desc(), AiInsight.id.desc())
        .limit(limit)
        .all()
    )


def mark_insight_read(insight_id: int) -> AiInsight:
    insight = db.session.get(AiInsight, insight_id)
    if not insight:
        raise NotFoundError("Insight not found", entity="ai_insight", entity_id=insight_id)
    insight.is_read = True
    db.session.commit()
    return insight
