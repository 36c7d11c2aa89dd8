"""
Generic context formatting and embedding text extraction.

Structured records are turned into prompt lines and embedding text purely
from caller-supplied ContextConfigs. Nothing here knows about any particular
record schema, and nothing here raises for well-formed records: bad template
usage degrades to a plain ``key: value`` rendering.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


DEFAULT_CONTEXT_TYPE = "default"

# Minimum share of a config's fields a record must carry to be detected as it
FIELD_MATCH_THRESHOLD = 0.5

EXPLICIT_TYPE_FIELDS = ("type", "context_type", "model_type")

EXCLUDED_EMBEDDING_FIELDS = frozenset({
    "id",
    "_id",
    "uuid",
    "created_at",
    "updated_at",
    "timestamp",
    "version",
    "status",
    "active",
})

_PLACEHOLDER_PATTERN = re.compile(r"%%|%\{(\w+)\}")

ContextItem = Union[str, Mapping[str, Any]]


class ContextConfig(BaseModel):
    """Formatting rules for one semantic record type."""

    fields: List[str] = Field(
        default_factory=list, description="Fields that identify and describe the type"
    )
    format: Optional[str] = Field(
        None, description="Display template with %{field} placeholders"
    )
    embedding_fields: List[str] = Field(
        default_factory=list, description="Fields used for embedding text, in order"
    )


def render_template(template: str, values: Mapping[str, Any]) -> Optional[str]:
    """
    Substitute ``%{name}`` placeholders in a template.

    ``%%`` renders a literal percent sign.

    Args:
        template: Template text
        values: Placeholder values by name

    Returns:
        The rendered text, or None if the template references a name
        missing from ``values``
    """
    missing = []

    def substitute(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name is None:
            return "%"
        if name not in values:
            missing.append(name)
            return ""
        return str(values[name])

    rendered = _PLACEHOLDER_PATTERN.sub(substitute, template)
    if missing:
        logger.debug(f"Template references missing placeholders: {missing}")
        return None
    return rendered


def _is_present(value: Any) -> bool:
    return value is not None and value is not False


def _is_text_value(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (str, int, float))


class ContextEngine:
    """
    Formats context items according to a set of named ContextConfigs.

    A built-in empty ``default`` config is always available and is used when
    no configured type matches a record.
    """

    def __init__(
        self,
        context_configs: Optional[Mapping[str, Union[ContextConfig, Mapping[str, Any]]]] = None,
    ):
        self._configured: Dict[str, ContextConfig] = {}
        for name, config in (context_configs or {}).items():
            self._configured[str(name)] = self._coerce_config(config)

        self.configs: Dict[str, ContextConfig] = {DEFAULT_CONTEXT_TYPE: ContextConfig()}
        self.configs.update(self._configured)

    @staticmethod
    def _coerce_config(config: Union[ContextConfig, Mapping[str, Any]]) -> ContextConfig:
        if isinstance(config, ContextConfig):
            return config
        return ContextConfig.model_validate(dict(config))

    def detect_context_type(self, item: ContextItem) -> str:
        """
        Determine the semantic type of a context item.

        An explicit ``type``, ``context_type`` or ``model_type`` field wins.
        Otherwise the configured type whose fields overlap the record most
        (at least FIELD_MATCH_THRESHOLD) is chosen; ties keep the first
        configured type.
        """
        if not isinstance(item, Mapping):
            return DEFAULT_CONTEXT_TYPE

        for key in EXPLICIT_TYPE_FIELDS:
            value = item.get(key)
            if _is_present(value):
                return str(value).lower() if key == "model_type" else str(value)

        if not self._configured:
            return DEFAULT_CONTEXT_TYPE

        return self._match_by_fields(item)

    def _match_by_fields(self, item: Mapping[str, Any]) -> str:
        item_fields = {str(key) for key in item.keys()}
        best_match = None
        best_score = 0.0

        for context_type, config in self._configured.items():
            if not config.fields:
                continue

            score = self.field_match_score(item_fields, config.fields)
            if score >= FIELD_MATCH_THRESHOLD and score > best_score:
                best_match = context_type
                best_score = score

        return best_match or DEFAULT_CONTEXT_TYPE

    @staticmethod
    def field_match_score(item_fields: Iterable[str], config_fields: List[str]) -> float:
        """Fraction of ``config_fields`` present in ``item_fields``."""
        if not config_fields:
            return 0.0
        matching = len(set(item_fields) & set(config_fields))
        return matching / len(config_fields)

    def resolve_config(
        self, item: ContextItem, context_type: Optional[str] = None
    ) -> ContextConfig:
        detected = context_type or self.detect_context_type(item)
        return self.configs.get(detected, self.configs[DEFAULT_CONTEXT_TYPE])

    def format_context_item(self, item: Any) -> str:
        """Render a context item as a single human-readable line."""
        if isinstance(item, Mapping):
            return self._format_record(item)
        if isinstance(item, str):
            return item
        return str(item)

    def _format_record(self, item: Mapping[str, Any]) -> str:
        config = self.resolve_config(item)
        if not config.format:
            return self._fallback_format(item)

        format_data = self._build_format_data(item, config)
        if not format_data:
            return self._fallback_format(item)

        rendered = render_template(config.format, format_data)
        if rendered is None:
            return self._fallback_format(item)
        return rendered

    @staticmethod
    def _build_format_data(item: Mapping[str, Any], config: ContextConfig) -> Dict[str, Any]:
        fields = config.fields or [str(key) for key in item.keys()]
        format_data = {}
        for field in fields:
            value = item.get(field)
            if _is_present(value):
                format_data[field] = value
        return format_data

    @staticmethod
    def _fallback_format(item: Mapping[str, Any]) -> str:
        return ", ".join(f"{key}: {value}" for key, value in item.items())

    def extract_embedding_text(
        self, item: ContextItem, context_type: Optional[str] = None
    ) -> str:
        """
        Build the text used to embed a context item.

        Plain strings are returned unchanged. Records use the resolved
        config's ``embedding_fields`` when declared, otherwise every
        non-blank string or numeric field outside EXCLUDED_EMBEDDING_FIELDS.
        """
        if not isinstance(item, Mapping):
            return str(item)

        config = self.resolve_config(item, context_type)
        if config.embedding_fields:
            values = [
                str(item[field])
                for field in config.embedding_fields
                if _is_present(item.get(field))
            ]
        else:
            values = self._extract_text_values(item)

        return " ".join(values).strip()

    @staticmethod
    def _extract_text_values(item: Mapping[str, Any]) -> List[str]:
        values = []
        for key, value in item.items():
            if str(key).lower() in EXCLUDED_EMBEDDING_FIELDS:
                continue
            if not _is_text_value(value):
                continue
            if not str(value).strip():
                continue
            values.append(str(value))
        return values
