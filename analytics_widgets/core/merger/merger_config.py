"""Dual-query merger configuration model.

This module defines the MergerConfig schema used to parse widget
configuration from JSON, or from the provider config object the dashboard
hands to a widget, into merger-consumable settings.
"""

from __future__ import annotations

from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

from analytics_widgets.core.domain.identities import QueryPairIdentity, query_pair_identity
from analytics_widgets.core.domain.types import QueryTemplate

PlaceholderName = Literal["from", "to", "now"]
NowPolicy = Literal["shared", "per_query"]


class MergerConfig(BaseModel):
    """Configuration of one dual-query widget.

    JSON example:
        {
          "widget_id": "IsAnalyticsSessionCount-1",
          "query_templates": {
            "query": "from S select count(*) where t > {{from}} and t < {{to}}",
            "query2": "from T select count(*) where t > {{from}} and t < {{now}}"
          },
          "now_policy": "shared"
        }

    ``now_policy`` controls how ``{{now}}`` is resolved: ``shared`` reads the
    clock once per cycle for both queries, ``per_query`` reads it once per
    query.
    """

    widget_id: str = Field(..., min_length=1)
    query_templates: QueryTemplate

    identity_suffix: str = Field(default="2", min_length=1)
    now_policy: NowPolicy = "shared"
    required_placeholders: list[PlaceholderName] = Field(default_factory=lambda: ["from", "to"])

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> MergerConfig:
        """Create a MergerConfig instance from a JSON-compatible object."""
        return cls.model_validate(obj)

    @classmethod
    def from_provider_config(
        cls,
        widget_id: str,
        provider_config: Mapping[str, Any],
        **overrides: Any,
    ) -> MergerConfig:
        """Create a MergerConfig from a dashboard provider config.

        The templates are read from ``configs.config.queryData.query`` and
        ``configs.config.queryData.query2``.
        """
        try:
            query_data = provider_config["configs"]["config"]["queryData"]
        except (KeyError, TypeError) as exc:
            raise ValueError("provider config has no configs.config.queryData") from exc

        if not isinstance(query_data, Mapping):
            raise ValueError("provider config queryData must be an object")

        return cls.model_validate(
            {
                "widget_id": widget_id,
                "query_templates": {
                    "query": query_data.get("query"),
                    "query2": query_data.get("query2"),
                },
                **overrides,
            }
        )

    @model_validator(mode="after")
    def validate_consistency(self) -> MergerConfig:
        """Validate internal consistency of the configuration."""
        if len(set(self.required_placeholders)) != len(self.required_placeholders):
            raise ValueError("required_placeholders must not contain duplicates")
        return self

    def pair_identity(self) -> QueryPairIdentity:
        """Return the identities the two queries are subscribed under."""
        return query_pair_identity(self.widget_id, self.identity_suffix)
