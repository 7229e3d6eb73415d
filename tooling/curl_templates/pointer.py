"""
Location paths: JSON pointers generalized over the four request namespaces.

    /pathSegments/<index>
    /queryParams/<key>
    /headers/<key>
    /body/<key or index>/...

Reference tokens use RFC 6901 escaping ("~" -> "~0", "/" -> "~1"), so a body
key literally named "a/b" is addressed as /body/a~1b and never collides with
the nested field /body/a/b.
"""

from dataclasses import dataclass
from typing import Any, List, Tuple

from .errors import InstantiationError
from .models import Namespace, Request, stringify_value


def escape_token(token: str) -> str:
    return token.replace("~", "~0").replace("/", "~1")


def unescape_token(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


@dataclass(frozen=True)
class LocationPath:
    namespace: Namespace
    tokens: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> "LocationPath":
        if not text.startswith("/"):
            raise ValueError(f"Location path must start with '/': {text!r}")
        root, *rest = text[1:].split("/")
        namespace = Namespace.from_root(root)
        return cls(namespace, tuple(unescape_token(t) for t in rest))

    @classmethod
    def root_of(cls, namespace: Namespace) -> "LocationPath":
        return cls(namespace)

    def child(self, token: Any) -> "LocationPath":
        return LocationPath(self.namespace, self.tokens + (str(token),))

    def __str__(self) -> str:
        return "/" + self.namespace.root + "".join("/" + escape_token(t) for t in self.tokens)

    @property
    def display(self) -> str:
        """Unescaped, root-relative form for humans: a/b/0."""
        return "/".join(self.tokens)

    def is_ancestor_of(self, other: "LocationPath") -> bool:
        n = len(self.tokens)
        return (
            self.namespace == other.namespace
            and n < len(other.tokens)
            and other.tokens[:n] == self.tokens
        )

    def conflicts_with(self, other: "LocationPath") -> bool:
        return self.is_ancestor_of(other) or other.is_ancestor_of(self)

    # ----------------------------
    # Read / write against a Request
    # ----------------------------

    def resolve(self, request: Request) -> Any:
        """Value at this path. Raises KeyError when the path does not exist."""
        node = _namespace_value(request, self.namespace)
        for token in self.tokens:
            if isinstance(node, dict) and token in node:
                node = node[token]
            elif isinstance(node, list) and token.isdigit() and int(token) < len(node):
                node = node[int(token)]
            else:
                raise KeyError(str(self))
        return node

    def exists_in(self, request: Request) -> bool:
        try:
            self.resolve(request)
        except KeyError:
            return False
        return True

    def assign(self, request: Request, value: Any) -> None:
        """
        Write `value` at this path, in place.
        Missing intermediate maps are created; an absent body becomes {}.
        """
        path = str(self)

        if self.namespace is Namespace.BODY:
            if not self.tokens:
                request.body = value
                request.body_mode = "json"
                return
            if request.body is None:
                request.body = {}
                request.body_mode = "json"
            elif request.body_mode == "raw":
                raise InstantiationError(f"Cannot address into a raw (non-JSON) body: {path}", path)
            _set_in(request.body, self.tokens, value, path)
            return

        if len(self.tokens) != 1:
            raise InstantiationError(f"Expected exactly one reference token: {path}", path)
        token = self.tokens[0]

        if self.namespace is Namespace.PATH:
            idx = _list_index(request.path_segments, token, path, allow_append=False)
            request.path_segments[idx] = stringify_value(value)
        elif self.namespace is Namespace.QUERY:
            request.query_params[token] = value
        else:
            request.headers[token] = stringify_value(value)


def _namespace_value(request: Request, namespace: Namespace) -> Any:
    if namespace is Namespace.PATH:
        return request.path_segments
    if namespace is Namespace.QUERY:
        return request.query_params
    if namespace is Namespace.HEADER:
        return request.headers
    return request.body


def _list_index(items: List[Any], token: str, path: str, *, allow_append: bool) -> int:
    if token == "-" and allow_append:
        return len(items)
    if not token.isdigit():
        raise InstantiationError(f"Expected a list index, got {token!r}: {path}", path)
    idx = int(token)
    limit = len(items) + 1 if allow_append else len(items)
    if idx >= limit:
        raise InstantiationError(f"List index {idx} out of range: {path}", path)
    return idx


def _set_in(doc: Any, tokens: Tuple[str, ...], value: Any, path: str) -> None:
    node = doc
    for token in tokens[:-1]:
        if isinstance(node, dict):
            if token not in node:
                node[token] = {}
            node = node[token]
        elif isinstance(node, list):
            node = node[_list_index(node, token, path, allow_append=False)]
        else:
            raise InstantiationError(f"Parent is not a container: {path}", path)

    last = tokens[-1]
    if isinstance(node, dict):
        node[last] = value
    elif isinstance(node, list):
        idx = _list_index(node, last, path, allow_append=True)
        if idx == len(node):
            node.append(value)
        else:
            node[idx] = value
    else:
        raise InstantiationError(f"Parent is not a container: {path}", path)
