import copy
import json
import logging
from typing import Any, Iterable, Mapping, Optional, Sequence

import httpx

from .errors import InstantiationError, SelectionError
from .fields import DEFAULT_MAX_DEPTH, identify_candidates
from .models import (
    CandidateField,
    ModifiableField,
    Namespace,
    Request,
    Template,
    build_pathname,
    build_url,
    is_container,
    quote_segment,
    to_json_text,
    value_type,
)
from .parser import parse_curl_command
from .pointer import LocationPath
from .redaction import redact
from .schema import BackendSchema, ParameterDefinition
from .secret_resolver import SecretResolver
from .selection import SelectionState

logger = logging.getLogger(__name__)


# ----------------------------
# Request + fields -> Template
# ----------------------------

def _check_fields(request: Request, fields: Sequence[ModifiableField]) -> None:
    paths = []
    for f in fields:
        try:
            path = LocationPath.parse(f.location_path)
        except ValueError as e:
            raise SelectionError(str(e)) from e
        if not path.exists_in(request):
            raise SelectionError(f"Field does not resolve inside the request: {f.location_path}")
        paths.append(path)

    for i, a in enumerate(paths):
        for b in paths[i + 1:]:
            if a == b or a.conflicts_with(b):
                raise SelectionError(f"Overlapping fields: {a} and {b}")


def compile_template(request: Request, fields: Iterable[ModifiableField]) -> Template:
    """
    Combine a parsed request and its selected fields into a Template.

    url_template substitutes "{name}" at the index of each selected path
    segment, so equal segment text elsewhere in the path is left alone.
    """
    fields = tuple(fields)
    _check_fields(request, fields)

    segments = [quote_segment(s) for s in request.path_segments]
    for f in fields:
        if f.namespace is Namespace.PATH:
            index = int(LocationPath.parse(f.location_path).tokens[0])
            segments[index] = f"{{{f.name}}}"

    return Template(
        original_command=request.command,
        request_skeleton=request.copy(),
        fields=tuple(copy.deepcopy(f) for f in fields),
        url_template=request.base_url + "/" + "/".join(segments),
    )


def to_backend_schema(template: Template) -> BackendSchema:
    names = template.parameter_names
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise SelectionError(f"Duplicate parameter names: {', '.join(dupes)}")

    parameters = []
    for f in template.fields:
        vt = value_type(f.example_value)
        parameters.append(ParameterDefinition(
            parameter_name=f.name,
            json_pointer=f.location_path,
            location=f.namespace.value,
            example_value=to_json_text(f.example_value),
            value_type=vt,
            example_structure=f.example_value if is_container(f.example_value) else None,
        ))

    request = template.request_skeleton
    original_body: Optional[str] = None
    if request.has_body:
        original_body = request.body if request.body_mode == "raw" else to_json_text(request.body)

    return BackendSchema(
        original_curl=template.original_command,
        method=request.method,
        base_url=request.base_url,
        url_template=template.url_template,
        original_headers=list(request.headers.items()),
        original_body=original_body,
        parameters=parameters,
        parameter_names=names,
    )


def template_from_schema(schema: BackendSchema, *, env_placeholders: bool = False) -> Template:
    """Rebuild a Template from its wire form by re-parsing original_curl."""
    request = parse_curl_command(schema.original_curl, env_placeholders=env_placeholders)
    fields = [
        ModifiableField(
            location_path=p.json_pointer,
            namespace=Namespace(p.location),
            name=p.parameter_name,
            example_value=json.loads(p.example_value),
        )
        for p in schema.parameters
    ]
    return compile_template(request, fields)


# ----------------------------
# Template + args -> Request
# ----------------------------

def instantiate(template: Template, args: Optional[Mapping[str, Any]] = None) -> Request:
    """
    Produce a concrete Request from a Template.

    Each field takes args[name] when given and its example value otherwise.
    The template is never modified; all writes go to a deep copy.
    """
    args = dict(args or {})
    request = template.request_skeleton.copy()

    for f in template.fields:
        if f.name in args:
            value = args[f.name]
        else:
            value = f.example_value
            logger.debug("no argument for %s, using example value", f.name)

        try:
            path = LocationPath.parse(f.location_path)
        except ValueError as e:
            raise InstantiationError(str(e), f.location_path) from e
        path.assign(request, copy.deepcopy(value))

    request.rebuild_url()
    logger.debug("instantiated %s %s", request.method, redact(request.url))
    return request


def to_httpx_request(request: Request, *, secrets: Optional[SecretResolver] = None) -> httpx.Request:
    """
    Build (but do not send) the httpx.Request for a concrete Request.
    {{env:NAME}} placeholders are resolved through `secrets`; a KeyError
    lists every name that cannot be resolved.
    """
    secrets = secrets or SecretResolver()

    missing = secrets.missing(
        [request.base_url, request.path_segments, request.query_params, request.headers, request.body]
    )
    if missing:
        raise KeyError(f"Missing required secrets: {', '.join(missing)}")

    # render before encoding, placeholders in the query would be escaped otherwise
    url = build_url(
        secrets.render(request.base_url),
        build_pathname(secrets.render(list(request.path_segments))),
        secrets.render(dict(request.query_params)),
    )
    headers = secrets.render(dict(request.headers))

    content: Optional[str] = None
    if request.has_body:
        body = secrets.render(request.body)
        if request.body_mode == "json":
            if not any(k.lower() == "content-type" for k in headers):
                headers["Content-Type"] = "application/json"
            content = to_json_text(body)
        else:
            content = body

    return httpx.Request(request.method, url, headers=headers, content=content)


# ----------------------------
# Entry point
# ----------------------------

class CurlTemplateCompiler:
    """
    Main entrypoint.

    - parse(curl_text): command text -> Request
    - candidates(request) / new_selection(request): what can be parameterized
    - compile(request, fields) -> Template, backend_schema(template) -> BackendSchema
    - instantiate(template, args) / instantiate_schema(schema, args) -> Request
    - to_httpx_request(request): hand-off to an HTTP client
    """

    def __init__(
        self,
        *,
        max_body_depth: int = DEFAULT_MAX_DEPTH,
        ignored_headers: Iterable[str] = (),
        env_placeholders: bool = False,
        secrets: Optional[SecretResolver] = None,
        auto_dotenv: bool = False,
        dotenv_path: Optional[str] = None,
        dotenv_override: bool = False,
    ):
        self.max_body_depth = max_body_depth
        self.ignored_headers = tuple(ignored_headers)
        self.env_placeholders = env_placeholders
        self.secrets = secrets or SecretResolver(
            auto_dotenv=auto_dotenv,
            dotenv_path=dotenv_path,
            dotenv_override=dotenv_override,
        )

    def parse(self, curl_text: str) -> Request:
        return parse_curl_command(curl_text, env_placeholders=self.env_placeholders)

    def candidates(self, request: Request) -> list[CandidateField]:
        return identify_candidates(
            request,
            max_depth=self.max_body_depth,
            ignored_headers=self.ignored_headers,
        )

    def new_selection(self, request: Request) -> SelectionState:
        return SelectionState(candidates=tuple(self.candidates(request)))

    def compile(self, request: Request, fields: Iterable[ModifiableField]) -> Template:
        return compile_template(request, fields)

    def backend_schema(self, template: Template) -> BackendSchema:
        return to_backend_schema(template)

    def schema_from_dict(self, d: Mapping[str, Any]) -> BackendSchema:
        return BackendSchema.from_dict(d)

    def instantiate(self, template: Template, args: Optional[Mapping[str, Any]] = None) -> Request:
        return instantiate(template, args)

    def instantiate_schema(self, schema: BackendSchema, args: Optional[Mapping[str, Any]] = None) -> Request:
        template = template_from_schema(schema, env_placeholders=self.env_placeholders)
        return instantiate(template, args)

    def to_httpx_request(self, request: Request) -> httpx.Request:
        return to_httpx_request(request, secrets=self.secrets)
