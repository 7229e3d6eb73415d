from .compiler import (
    CurlTemplateCompiler,
    compile_template,
    instantiate,
    template_from_schema,
    to_backend_schema,
    to_httpx_request,
)
from .errors import CurlTemplateError, InstantiationError, ParseError, SelectionError
from .fields import STANDARD_HEADERS, identify_candidates, suggest_segment_name
from .models import (
    CandidateField,
    ModifiableField,
    Namespace,
    Request,
    Template,
    value_type,
)
from .parser import parse_curl_command, render_curl_command
from .pointer import LocationPath
from .redaction import looks_like_secret, redact
from .schema import BackendSchema, ParameterDefinition
from .secret_resolver import SecretResolver, placeholder_names
from .selection import SelectionState, remove, rename, toggle
