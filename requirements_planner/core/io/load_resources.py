from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml

from requirements_planner.core.errors import ResourceLoadError
from requirements_planner.core.model import KnowledgeResource


_OPTIONAL_STR_FIELDS: dict[str, str] = {
    "description": "description",
    "content": "content",
    "category": "category",
    "url": "url",
    "lastAccessed": "last_accessed",
    "pricePoint": "price_point",
    "marketSegment": "market_segment",
}

_EXPECTED: dict[str, str] = {
    "lastAccessed": "a string or timestamp",
    "pricePoint": "a string or number",
}

_INVALID = object()


def load_resources(path: str) -> list[KnowledgeResource]:
    """Load and validate a knowledge-resource collection from a YAML/JSON file.

    Raises the first validation error (after sorting); callers that want every
    problem should use read_resource_records + parse_resources.
    """

    records = read_resource_records(path)
    resources, errors = parse_resources(records, file=path)
    if errors:
        raise errors[0]
    return resources


def read_resource_records(path: str) -> list[Any]:
    """Read raw resource records without validating them.

    Accepts either a top-level list of resources or a mapping with a
    ``resources`` list. An empty file is an empty collection.
    """

    p = Path(path)
    if not p.exists():
        raise ResourceLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as e:  # pragma: no cover
        raise ResourceLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw_text)
        elif suffix == ".json":
            data = json.loads(raw_text)
        else:
            raise ResourceLoadError(
                code="E_UNSUPPORTED_FORMAT",
                message="supported formats are .yaml/.yml and .json",
                file=str(p),
            )
    except ResourceLoadError:
        raise
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        code = "E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE"
        raise ResourceLoadError(code=code, message=str(e), file=str(p)) from e

    if data is None:
        return []

    if isinstance(data, dict):
        data = data.get("resources")
    if not isinstance(data, list):
        raise ResourceLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="document must be a list of resources or a mapping with a 'resources' list",
            file=str(p),
        )
    return data


def parse_resources(
    records: list[Any], *, file: Optional[str] = None
) -> tuple[list[KnowledgeResource], list[ResourceLoadError]]:
    """Validate raw resource records. Returns (resources, errors); resources is empty when errors exist."""

    errors: list[ResourceLoadError] = []
    resources: list[KnowledgeResource] = []
    seen: set[str] = set()

    for i, raw in enumerate(records):
        rpath = f"resources[{i}]"
        if not isinstance(raw, dict):
            errors.append(
                ResourceLoadError(
                    code="E_INVALID_TYPE",
                    message="resource must be an object",
                    file=file,
                    path=rpath,
                )
            )
            continue

        rid = raw.get("id")
        if isinstance(rid, int) and not isinstance(rid, bool):
            rid = str(rid)
        if not isinstance(rid, str) or not rid.strip():
            errors.append(
                ResourceLoadError(
                    code="E_REQUIRED_FIELD",
                    message="id is required and must be a non-empty string",
                    file=file,
                    path=f"{rpath}.id",
                )
            )
            continue

        if rid in seen:
            errors.append(
                ResourceLoadError(
                    code="E_DUPLICATE_ID",
                    message=f"duplicate resource id: {rid}",
                    file=file,
                    path=f"{rpath}.id",
                )
            )
            continue

        title = raw.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append(
                ResourceLoadError(
                    code="E_REQUIRED_FIELD",
                    message="title is required and must be a non-empty string",
                    file=file,
                    path=f"{rpath}.title",
                )
            )
            continue

        tags = raw.get("tags")
        if tags is None:
            tags = []
        if not isinstance(tags, list) or any(not isinstance(t, str) for t in tags):
            errors.append(
                ResourceLoadError(
                    code="E_INVALID_TYPE",
                    message="tags must be an array of strings",
                    file=file,
                    path=f"{rpath}.tags",
                )
            )
            continue

        access_count = raw.get("accessCount")
        if access_count is not None and (
            not isinstance(access_count, int) or isinstance(access_count, bool) or access_count < 0
        ):
            errors.append(
                ResourceLoadError(
                    code="E_INVALID_TYPE",
                    message="accessCount must be a non-negative integer",
                    file=file,
                    path=f"{rpath}.accessCount",
                )
            )
            continue

        optional: dict[str, Optional[str]] = {}
        bad_fields: list[str] = []
        for key, attr in _OPTIONAL_STR_FIELDS.items():
            value = _optional_text(key, raw.get(key))
            if value is _INVALID:
                bad_fields.append(key)
            else:
                optional[attr] = value
        if bad_fields:
            for k in bad_fields:
                errors.append(
                    ResourceLoadError(
                        code="E_INVALID_TYPE",
                        message=f"{k} must be {_EXPECTED.get(k, 'a string')}",
                        file=file,
                        path=f"{rpath}.{k}",
                    )
                )
            continue

        seen.add(rid)
        resources.append(
            KnowledgeResource(
                id=rid,
                title=title,
                tags=list(tags),
                access_count=access_count,
                **optional,
            )
        )

    if errors:
        return [], _sorted(errors)
    return resources, []


def _optional_text(key: str, value: Any) -> Any:
    """Normalise an optional text field; returns _INVALID for a wrong type."""
    if value is None or isinstance(value, str):
        return value
    # yaml.safe_load turns unquoted ISO timestamps into date/datetime objects.
    if key == "lastAccessed" and isinstance(value, (date, datetime)):
        return value.isoformat()
    if key == "pricePoint" and isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return _INVALID


def _sorted(errors: Iterable[ResourceLoadError]) -> list[ResourceLoadError]:
    return sorted(
        list(errors),
        key=lambda e: (
            e.file or "",
            e.path or "",
            e.code,
        ),
    )
