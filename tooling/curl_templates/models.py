import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
from urllib.parse import quote, urlencode

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]
BodyMode = Literal["json", "raw"]
ValueType = Literal["string", "number", "boolean", "object", "array"]

JsonObject = Dict[str, Any]
JsonArray = List[Any]
JsonValue = Union[None, bool, int, float, str, JsonArray, JsonObject]


# ----------------------------
# JSON values
# ----------------------------

def value_type(value: Any) -> ValueType:
    """
    Classify a JSON value for the wire schema.
    null is reported as "object", which is what the execution engine expects.
    """
    # bool first: bool is an int subclass
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict) or value is None:
        return "object"
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def is_container(value: Any) -> bool:
    return isinstance(value, (list, dict))


def to_json_text(value: Any) -> str:
    """Compact JSON text, the form used on the wire."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def stringify_value(value: Any) -> str:
    """
    Text form of a value placed into the URL or a header.
    Strings pass through; everything else is written as JSON (true, null, 42, {...}).
    """
    if isinstance(value, str):
        return value
    return to_json_text(value)


# ----------------------------
# Namespaces
# ----------------------------

class Namespace(str, Enum):
    """The four addressable parts of a request, valued as the wire `location`."""
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"

    @property
    def root(self) -> str:
        return _NAMESPACE_ROOTS[self]

    @classmethod
    def from_root(cls, root: str) -> "Namespace":
        for ns, r in _NAMESPACE_ROOTS.items():
            if r == root:
                return ns
        raise ValueError(f"Unknown location root: {root!r}")


_NAMESPACE_ROOTS = {
    Namespace.PATH: "pathSegments",
    Namespace.QUERY: "queryParams",
    Namespace.HEADER: "headers",
    Namespace.BODY: "body",
}


# ----------------------------
# Request
# ----------------------------

# pchar minus the unreserved set quote() already keeps
_SEGMENT_SAFE = "!$&'()*+,;=:@"


def quote_segment(segment: Any) -> str:
    return quote(stringify_value(segment), safe=_SEGMENT_SAFE)


def build_pathname(path_segments: List[Any]) -> str:
    """Segments are held decoded; "/", "?", "#", "%" and spaces are escaped here."""
    return "/" + "/".join(quote_segment(s) for s in path_segments)


def build_query_string(query_params: Dict[str, Any]) -> str:
    pairs = [(str(k), stringify_value(v)) for k, v in query_params.items()]
    return urlencode(pairs)


def build_url(base_url: str, pathname: str, query_params: Dict[str, Any]) -> str:
    query = build_query_string(query_params)
    return f"{base_url}{pathname}?{query}" if query else f"{base_url}{pathname}"


@dataclass
class Request:
    """
    One concrete HTTP request as parsed from a command.

    `url` is always the normalized form rebuilt from base_url, path_segments
    and query_params, so a request survives parse -> instantiate unchanged.
    `body_mode` is None when the command carried no body at all.
    """
    method: str
    url: str
    base_url: str
    pathname: str
    path_segments: List[str] = field(default_factory=list)
    query_params: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Any] = None
    body_mode: Optional[BodyMode] = None
    command: str = ""

    @property
    def has_body(self) -> bool:
        return self.body_mode is not None

    def rebuild_url(self) -> None:
        self.pathname = build_pathname(self.path_segments)
        self.url = build_url(self.base_url, self.pathname, self.query_params)

    def copy(self) -> "Request":
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe view of the request itself (the command text is left out)."""
        return {
            "method": self.method,
            "url": self.url,
            "base_url": self.base_url,
            "pathname": self.pathname,
            "path_segments": list(self.path_segments),
            "query_params": dict(self.query_params),
            "headers": dict(self.headers),
            "body": copy.deepcopy(self.body),
            "body_mode": self.body_mode,
        }


# ----------------------------
# Fields + template
# ----------------------------

@dataclass(frozen=True)
class CandidateField:
    location_path: str
    namespace: Namespace
    suggested_name: str
    example_value: Any
    description: str = ""


@dataclass(frozen=True)
class ModifiableField:
    location_path: str
    namespace: Namespace
    name: str
    example_value: Any

    @classmethod
    def from_candidate(cls, candidate: CandidateField, name: Optional[str] = None) -> "ModifiableField":
        return cls(
            location_path=candidate.location_path,
            namespace=candidate.namespace,
            name=name or candidate.suggested_name,
            example_value=copy.deepcopy(candidate.example_value),
        )


@dataclass
class Template:
    original_command: str
    request_skeleton: Request
    fields: Tuple[ModifiableField, ...]
    url_template: str

    @property
    def parameter_names(self) -> List[str]:
        return [f.name for f in self.fields]
