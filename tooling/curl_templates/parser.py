import base64
import json
import logging
import re
import shlex
from typing import Any, Optional
from urllib.parse import parse_qsl, quote, unquote, urlsplit

from .errors import ParseError
from .models import Request, build_pathname, build_url, to_json_text
from .redaction import redact

logger = logging.getLogger(__name__)

ALLOWED_METHODS = {"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"}

_CONTINUATION_RE = re.compile(r"\\[ \t]*\r?\n[ \t]*")

_METHOD_FLAGS = ("-X", "--request")
_HEADER_FLAGS = ("-H", "--header")
_DATA_FLAGS = ("-d", "--data", "--data-raw", "--data-binary", "--data-ascii")
_USER_FLAGS = ("-u", "--user")
_USER_AGENT_FLAGS = ("-A", "--user-agent")
_GET_FLAGS = ("-G", "--get")

# Flags whose argument we consume but do not model.
_SKIPPED_VALUE_FLAGS = (
    "-m", "--max-time", "--connect-timeout",
    "-o", "--output",
    "-b", "--cookie",
    "-F", "--form",
    "-x", "--proxy",
    "-e", "--referer",
)

_VALUE_FLAGS = frozenset(
    _METHOD_FLAGS + _HEADER_FLAGS + _DATA_FLAGS + _USER_FLAGS + _USER_AGENT_FLAGS
    + _SKIPPED_VALUE_FLAGS + ("--json", "--url", "--data-urlencode")
)


# ----------------------------
# Shell env -> {{env:NAME}}
# ----------------------------

_DOLLAR_ENV_RE = re.compile(r"(?<!\\)\$(\{)?([A-Za-z_][A-Za-z0-9_]*)\}?")


def _convert_shell_env_to_placeholder(s: str) -> str:
    """
    Converts $VARNAME or ${VARNAME} to {{env:VARNAME}}.
    Leaves escaped dollars intact: "\\$FOO" stays "$FOO".
    """
    sentinel = "__CURLTEMPLATES_ESCAPED_DOLLAR__"
    s = s.replace("\\$", sentinel)
    s = _DOLLAR_ENV_RE.sub(lambda m: f"{{{{env:{m.group(2)}}}}}", s)
    return s.replace(sentinel, "$")


# ----------------------------
# Helpers
# ----------------------------

def normalize_continuations(text: str) -> str:
    """Collapse backslash-newline continuations into a single space."""
    return _CONTINUATION_RE.sub(" ", text).strip()


def _parse_header_kv(h: str) -> tuple[str, str]:
    # Header format: "Key: Value"
    if ":" not in h:
        return h.strip(), ""
    k, v = h.split(":", 1)
    return k.strip(), v.strip()


def _has_header(headers: dict[str, str], name: str) -> bool:
    return any(k.lower() == name.lower() for k in headers)


def _split_attached(t: str) -> Optional[tuple[str, str]]:
    """"-XPOST" -> ("-X", "POST"), "--request=POST" -> ("--request", "POST")."""
    if t.startswith("--"):
        flag, sep, value = t.partition("=")
        if sep and flag in _VALUE_FLAGS:
            return flag, value
    elif len(t) > 2 and t[:2] in _VALUE_FLAGS:
        return t[:2], t[2:]
    return None


_PLACEHOLDER_SPLIT_RE = re.compile(r"(\{\{env:[A-Za-z_][A-Za-z0-9_]*\}\})")


def _quote_form_value(v: str) -> str:
    # {{env:NAME}} placeholders stay readable so they can be resolved later
    parts = _PLACEHOLDER_SPLIT_RE.split(v)
    return "".join(p if n % 2 else quote(p, safe="") for n, p in enumerate(parts))


def _urlencode_data(arg: str) -> str:
    # curl: "content", "=content" and "name=content" forms
    if "=" not in arg:
        return _quote_form_value(arg)
    k, v = arg.split("=", 1)
    return f"{k}={_quote_form_value(v)}" if k else _quote_form_value(v)


def _parse_body(raw: str) -> tuple[Any, str]:
    try:
        return json.loads(raw), "json"
    except ValueError:
        return raw, "raw"


def _split_url(url: str) -> tuple[str, list[str], dict[str, str]]:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        raise ParseError(f"curl: URL must include a scheme and host: {url!r}")

    base_url = f"{parts.scheme}://{parts.netloc}"
    segments = [unquote(s) for s in parts.path.split("/") if s]

    # last wins on duplicate keys
    params: dict[str, str] = {}
    for k, v in parse_qsl(parts.query, keep_blank_values=True):
        params[k] = v
    return base_url, segments, params


# ----------------------------
# Deterministic cURL parsing
# ----------------------------

def parse_curl_command(curl_text: str, *, env_placeholders: bool = False) -> Request:
    """
    Parse a practical subset of curl into a Request.

    Supported:
      - URL: first positional argument or --url <url>
      - Method: -X/--request <METHOD>, -G/--get (forces GET)
      - Headers: -H/--header "Key: Value" (last wins)
      - Body: -d/--data/--data-raw/--data-binary/--data-ascii/--json <payload>
      - Form data: --data-urlencode "k=v" (the value is percent-encoded)
      - Auth: -u/--user "user:pass" (becomes an Authorization: Basic header)
      - User agent: -A/--user-agent <value>

    Notes:
      - Backslash-newline continuations are collapsed before tokenizing.
      - Attached values are accepted: -XPOST, -H'Key: Value', --request=POST.
      - Repeated data flags are joined with "&", as curl does.
      - The body is parsed as JSON when possible and kept verbatim otherwise.
      - With -G/--get the data payload is moved into the query string.
      - With env_placeholders=True, $NAME and ${NAME} become {{env:NAME}}.
    """
    convert = _convert_shell_env_to_placeholder if env_placeholders else (lambda s: s)

    try:
        tokens = shlex.split(normalize_continuations(curl_text), posix=True)
    except ValueError as e:
        raise ParseError(f"curl: cannot tokenize command: {e}") from e

    if tokens and tokens[0] == "curl":
        tokens = tokens[1:]
    if not tokens:
        raise ParseError("curl: command contains no arguments")

    method: Optional[str] = None
    headers: dict[str, str] = {}
    data_parts: list[str] = []
    url: Optional[str] = None
    force_get = False
    json_flag = False

    def _value(i: int, flag: str) -> str:
        if i >= len(tokens):
            raise ParseError(f"curl: missing argument for {flag}")
        return tokens[i]

    i = 0
    while i < len(tokens):
        t = tokens[i]

        attached = _split_attached(t)
        if attached is not None:
            tokens[i:i + 1] = attached
            t = tokens[i]

        if t in _METHOD_FLAGS:
            i += 1
            method = _value(i, t).upper()

        elif t in _HEADER_FLAGS:
            i += 1
            k, v = _parse_header_kv(_value(i, t))
            headers[k] = convert(v)

        elif t in _DATA_FLAGS:
            i += 1
            data_parts.append(convert(_value(i, t)))

        elif t == "--data-urlencode":
            i += 1
            data_parts.append(_urlencode_data(convert(_value(i, t))))

        elif t == "--json":
            i += 1
            data_parts.append(convert(_value(i, t)))
            json_flag = True

        elif t == "--url":
            i += 1
            url = convert(_value(i, t))

        elif t in _USER_FLAGS:
            i += 1
            userpass = _value(i, t)
            if ":" not in userpass:
                raise ParseError("curl: -u expects user:pass")
            token = base64.b64encode(userpass.encode("utf-8")).decode("ascii")
            headers["Authorization"] = f"Basic {token}"

        elif t in _USER_AGENT_FLAGS:
            i += 1
            headers["User-Agent"] = _value(i, t)

        elif t in _GET_FLAGS:
            force_get = True

        elif t in _SKIPPED_VALUE_FLAGS:
            i += 1
            _value(i, t)

        elif t.startswith("-") and t != "-":
            # Ignore other flags (-L, -k, -s, --compressed, ...)
            pass

        elif url is None:
            url = convert(t)

        i += 1

    if url is None:
        raise ParseError("curl: no URL found")

    base_url, path_segments, query_params = _split_url(url)

    # Infer method
    if force_get:
        inferred_method = "GET"
    elif method is not None:
        inferred_method = method
    elif data_parts:
        inferred_method = "POST"
    else:
        inferred_method = "GET"

    if inferred_method not in ALLOWED_METHODS:
        raise ParseError(f"Unsupported or unrecognized HTTP method: {inferred_method}")

    body: Optional[Any] = None
    body_mode: Optional[str] = None
    if data_parts:
        raw = "&".join(data_parts)
        if force_get:
            for k, v in parse_qsl(raw, keep_blank_values=True):
                query_params[k] = v
        else:
            body, body_mode = _parse_body(raw)

    if json_flag:
        if not _has_header(headers, "Content-Type"):
            headers["Content-Type"] = "application/json"
        if not _has_header(headers, "Accept"):
            headers["Accept"] = "application/json"

    pathname = build_pathname(path_segments)
    request = Request(
        method=inferred_method,
        url=build_url(base_url, pathname, query_params),
        base_url=base_url,
        pathname=pathname,
        path_segments=path_segments,
        query_params=query_params,
        headers=headers,
        body=body,
        body_mode=body_mode,  # type: ignore[arg-type]
        command=curl_text,
    )
    logger.debug(
        "parsed curl: %s %s (%d headers, body_mode=%s)",
        request.method, redact(request.url), len(request.headers), request.body_mode,
    )
    return request


def render_curl_command(request: Request) -> str:
    """
    Normalized command text for a Request.
    parse_curl_command(render_curl_command(r)) reproduces r.
    """
    lines = [f"curl -X {request.method} {shlex.quote(request.url)}"]
    for k, v in request.headers.items():
        lines.append(f"-H {shlex.quote(f'{k}: {v}')}")
    if request.has_body:
        payload = request.body if request.body_mode == "raw" else to_json_text(request.body)
        lines.append(f"--data {shlex.quote(payload)}")
    return " \\\n  ".join(lines)
