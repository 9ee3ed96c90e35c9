"""
app/mappers/schema_mapper.py

Column mapping engine: CSV headers -> canonical record fields.

Each canonical field is resolved by the first pass that claims it:

    1. override   saved mapping config, then manual overrides (manual wins)
    2. exact      header equals the field name or one of its aliases
    3. fuzzy      closest header by similarity ratio above a threshold

A header is claimed by at most one field. The exact pass runs over all
fields before any fuzzy guess, so a near miss for one field can never take
a header that names another field outright.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Any, Iterable, Mapping, Sequence

from app.validators.mapping_validator import (
    EMPTY_HEADERS,
    INVALID_OVERRIDE_FIELD,
    OVERRIDE_SOURCE_NOT_FOUND,
    MappingErrorDetail,
    MappingValidator,
    SchemaMappingError,
)
from metrics.schema import RecordSchema

STRATEGY_OVERRIDE = "override"
STRATEGY_EXACT = "exact_or_alias"
STRATEGY_FUZZY = "fuzzy"


def normalize_header(header: str) -> str:
    """
    Lowercase and keep only letters and digits: "Amount spent (INR)" -> "amountspentinr".
    """

    return "".join(ch for ch in header.strip().lower() if ch.isalnum())


@dataclass(frozen=True)
class MappingResolution:
    """
    Resolved mapping plus how each field was matched.

    ``errors`` is only populated in collect mode (``validate=False``).
    """

    canonical_to_source: dict[str, str]
    source_headers: tuple[str, ...]
    match_strategies: dict[str, str]
    mapping_config_id: str | None = None
    errors: tuple[MappingErrorDetail, ...] = field(default_factory=tuple)

    @property
    def unmapped_headers(self) -> list[str]:
        used = set(self.canonical_to_source.values())
        return [header for header in self.source_headers if header not in used]


class _HeaderIndex:
    """
    Normalized lookup over one file's headers, tracking which are claimed.
    """

    def __init__(self, headers: Sequence[str]) -> None:
        self.headers = tuple(header for header in headers if header and header.strip())
        self._by_key: dict[str, str] = {}
        for header in self.headers:
            key = normalize_header(header)
            if key and key not in self._by_key:
                self._by_key[key] = header
        self._claimed: set[str] = set()

    def lookup(self, name: str) -> str | None:
        return self._by_key.get(normalize_header(name))

    def is_free(self, header: str) -> bool:
        return header not in self._claimed

    def claim(self, header: str) -> None:
        self._claimed.add(header)

    def free_items(self) -> list[tuple[str, str]]:
        return [(key, header) for key, header in self._by_key.items() if header not in self._claimed]


class SchemaMapper:
    """
    Resolves CSV headers into canonical field mappings for one record schema.
    """

    def __init__(
        self,
        schema: RecordSchema,
        *,
        validator: MappingValidator | None = None,
        fuzzy_threshold: float = 0.84,
    ) -> None:
        self._schema = schema
        self._fields = schema.field_names
        self._aliases = schema.aliases()
        self._validator = validator or MappingValidator(
            required_fields=schema.required_fields,
            canonical_fields=schema.field_names,
            source=schema.source.value,
        )
        self._fuzzy_threshold = max(0.0, min(1.0, fuzzy_threshold))

    @property
    def schema(self) -> RecordSchema:
        return self._schema

    def resolve_mapping(
        self,
        headers: Sequence[str],
        *,
        manual_overrides: Mapping[str, str] | None = None,
        mapping_config: Any | None = None,
        validate: bool = True,
    ) -> MappingResolution:
        """
        Resolve the canonical-to-source mapping for *headers*.

        With ``validate=True`` any problem raises SchemaMappingError. With
        ``validate=False`` problems are returned on the resolution instead,
        which is what the preview step shows the user.
        """

        index = _HeaderIndex(headers)
        if not index.headers:
            raise SchemaMappingError(
                message="CSV headers are empty; cannot resolve column mapping.",
                errors=[MappingErrorDetail(code=EMPTY_HEADERS, message="No CSV headers were provided.")],
            )

        config_aliases = _config_aliases(mapping_config)
        resolved: dict[str, str] = {}
        strategies: dict[str, str] = {}

        problems = self._apply_overrides(
            index,
            _override_pairs(mapping_config, manual_overrides),
            resolved,
            strategies,
        )
        for name in self._fields:
            if name in resolved:
                continue
            header = self._exact_match(index, self._candidates(name, config_aliases))
            if header is not None:
                self._assign(index, resolved, strategies, name, header, STRATEGY_EXACT)
        for name in self._fields:
            if name in resolved:
                continue
            header = self._fuzzy_match(index, self._candidates(name, config_aliases))
            if header is not None:
                self._assign(index, resolved, strategies, name, header, STRATEGY_FUZZY)

        if validate:
            self._validator.validate(mapping=resolved, source_headers=index.headers, pre_errors=problems)
        else:
            problems.extend(self._validator.collect_errors(mapping=resolved, source_headers=index.headers))

        raw_id = getattr(mapping_config, "id", None) if mapping_config is not None else None
        return MappingResolution(
            canonical_to_source=resolved,
            source_headers=index.headers,
            match_strategies=strategies,
            mapping_config_id=str(raw_id) if raw_id is not None else None,
            errors=() if validate else tuple(problems),
        )

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def _apply_overrides(
        self,
        index: _HeaderIndex,
        overrides: Mapping[str, str],
        resolved: dict[str, str],
        strategies: dict[str, str],
    ) -> list[MappingErrorDetail]:
        problems: list[MappingErrorDetail] = []
        for name, column in overrides.items():
            if name not in self._fields:
                problems.append(
                    MappingErrorDetail(
                        code=INVALID_OVERRIDE_FIELD,
                        message="Manual override contains unknown canonical field.",
                        canonical_field=name,
                        source_column=column,
                    )
                )
                continue
            header = index.lookup(column)
            if header is None:
                problems.append(
                    MappingErrorDetail(
                        code=OVERRIDE_SOURCE_NOT_FOUND,
                        message="Manual override points to a source column not present in CSV headers.",
                        canonical_field=name,
                        source_column=column,
                        context={"source_headers": list(index.headers)},
                    )
                )
                continue
            self._assign(index, resolved, strategies, name, header, STRATEGY_OVERRIDE)
        return problems

    @staticmethod
    def _exact_match(index: _HeaderIndex, candidates: Iterable[str]) -> str | None:
        for candidate in candidates:
            header = index.lookup(candidate)
            if header is not None and index.is_free(header):
                return header
        return None

    def _fuzzy_match(self, index: _HeaderIndex, candidates: Iterable[str]) -> str | None:
        keys = [key for key in (normalize_header(candidate) for candidate in candidates) if key]
        best_header: str | None = None
        best_score = 0.0
        for header_key, header in index.free_items():
            for key in keys:
                score = SequenceMatcher(None, header_key, key).ratio()
                if score > best_score:
                    best_header, best_score = header, score
        return best_header if best_score >= self._fuzzy_threshold else None

    def _candidates(self, name: str, config_aliases: Mapping[str, list[str]]) -> list[str]:
        return [name, *self._aliases.get(name, ()), *config_aliases.get(name, ())]

    @staticmethod
    def _assign(
        index: _HeaderIndex,
        resolved: dict[str, str],
        strategies: dict[str, str],
        name: str,
        header: str,
        strategy: str,
    ) -> None:
        resolved[name] = header
        strategies[name] = strategy
        index.claim(header)


# ---------------------------------------------------------------------------
# Saved config helpers
# ---------------------------------------------------------------------------


def _override_pairs(
    mapping_config: Any | None,
    manual_overrides: Mapping[str, str] | None,
) -> dict[str, str]:
    """
    Saved field mapping first, manual overrides on top; blank entries dropped.
    """

    merged: dict[str, str] = {}
    saved = getattr(mapping_config, "field_mapping_json", None) if mapping_config is not None else None
    for source in (saved, manual_overrides):
        if not isinstance(source, Mapping):
            continue
        for name, column in source.items():
            if isinstance(name, str) and isinstance(column, str) and name.strip() and column.strip():
                merged[name.strip()] = column.strip()
    return merged


def _config_aliases(mapping_config: Any | None) -> dict[str, list[str]]:
    raw = getattr(mapping_config, "alias_overrides_json", None) if mapping_config is not None else None
    if not isinstance(raw, dict):
        return {}
    return {
        name: [alias for alias in aliases if isinstance(alias, str) and alias.strip()]
        for name, aliases in raw.items()
        if isinstance(aliases, list)
    }
