import re
from typing import Any, Iterable, List

from .models import CandidateField, Namespace, Request
from .pointer import LocationPath

# Transport-level headers that are never offered as parameters.
STANDARD_HEADERS = frozenset({
    "content-type", "accept", "user-agent", "host", "connection", "cache-control",
    "accept-encoding", "accept-language", "origin", "referer", "content-length",
    "transfer-encoding", "upgrade", "via", "warning",
})

DEFAULT_MAX_DEPTH = 5

_BRACE_PLACEHOLDER_RE = re.compile(r"^\{([^}]+)\}$")
_COLON_PLACEHOLDER_RE = re.compile(r"^:(.+)$")
_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def is_standard_header(name: str, extra: Iterable[str] = ()) -> bool:
    lowered = name.lower()
    return lowered in STANDARD_HEADERS or lowered in {h.lower() for h in extra}


def suggest_segment_name(segment: str, index: int) -> str:
    """
    Argument name for a path segment:
      - "{name}" or ":name" placeholders keep their name
      - digits -> "id", UUIDs -> "uuid"
      - anything else -> "argument<1-based position>"
    """
    m = _BRACE_PLACEHOLDER_RE.match(segment) or _COLON_PLACEHOLDER_RE.match(segment)
    if m:
        return m.group(1)
    if segment.isdigit():
        return "id"
    if _UUID_RE.match(segment):
        return "uuid"
    return f"argument{index + 1}"


def identify_candidates(
    request: Request,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    ignored_headers: Iterable[str] = (),
) -> List[CandidateField]:
    """
    Every location in `request` that could become a parameter, in a stable order:
    path segments, query params, non-standard headers, then the JSON body
    depth-first. Raw (non-JSON) bodies are opaque and contribute nothing.
    """
    fields: List[CandidateField] = []
    ignored = tuple(ignored_headers)

    path_root = LocationPath.root_of(Namespace.PATH)
    for index, segment in enumerate(request.path_segments):
        fields.append(CandidateField(
            location_path=str(path_root.child(index)),
            namespace=Namespace.PATH,
            suggested_name=suggest_segment_name(segment, index),
            example_value=segment,
            description=f"Path segment: /{segment}",
        ))

    query_root = LocationPath.root_of(Namespace.QUERY)
    for key, value in request.query_params.items():
        fields.append(CandidateField(
            location_path=str(query_root.child(key)),
            namespace=Namespace.QUERY,
            suggested_name=key,
            example_value=value,
            description=f"Query parameter: {key}",
        ))

    header_root = LocationPath.root_of(Namespace.HEADER)
    for key, value in request.headers.items():
        if is_standard_header(key, ignored):
            continue
        fields.append(CandidateField(
            location_path=str(header_root.child(key)),
            namespace=Namespace.HEADER,
            suggested_name=key,
            example_value=value,
            description=f"Header: {key}",
        ))

    if request.body_mode == "json":
        body_root = LocationPath.root_of(Namespace.BODY)
        if isinstance(request.body, dict):
            _walk_map(request.body, body_root, fields, 0, max_depth)
        elif isinstance(request.body, list):
            _walk_list(request.body, body_root, "body", fields, 0, max_depth)

    return fields


# ----------------------------
# Body walk
# ----------------------------

def _body_field(path: LocationPath, name: str, value: Any, suffix: str = "") -> CandidateField:
    return CandidateField(
        location_path=str(path),
        namespace=Namespace.BODY,
        suggested_name=name,
        example_value=value,
        description=f"Body field: {path.display}{suffix}",
    )


def _walk_map(node: dict, base: LocationPath, fields: List[CandidateField], depth: int, max_depth: int) -> None:
    if depth > max_depth:
        return

    for key, value in node.items():
        path = base.child(key)

        if isinstance(value, dict):
            fields.append(_body_field(path, key, value, " (entire object)"))
            _walk_map(value, path, fields, depth + 1, max_depth)
        elif isinstance(value, list):
            fields.append(_body_field(path, key, value, " (entire array)"))
            _walk_list(value, path, key, fields, depth, max_depth)
        else:
            fields.append(_body_field(path, key, value))


def _walk_list(
    items: list,
    base: LocationPath,
    name: str,
    fields: List[CandidateField],
    depth: int,
    max_depth: int,
) -> None:
    for index, item in enumerate(items):
        path = base.child(index)
        fields.append(_body_field(path, f"{name}[{index}]", item))
        # nested lists are offered whole, never walked
        if isinstance(item, dict):
            _walk_map(item, path, fields, depth + 1, max_depth)
