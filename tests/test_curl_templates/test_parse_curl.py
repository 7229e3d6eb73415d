import pytest

from tooling.curl_templates import ParseError, parse_curl_command, render_curl_command

USERS_CURL = (
    "curl -X GET 'https://api.example.com/users/42?limit=10' "
    "-H 'X-Api-Key: sk-ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789'"
)

HEYREACH_CURL = r"""
curl --location 'https://api.heyreach.io/api/public/campaign/GetAll' \
  --header 'X-API-KEY: $HEYREACH_API_KEY' \
  --header 'Content-Type: application/json' \
  --header 'Accept: text/plain' \
  --data '{
    "offset": 0,
    "keyword": "",
    "statuses": [],
    "accountIds": [],
    "limit": 10
  }'
"""


def test_parse_get_with_query_and_header():
    req = parse_curl_command(USERS_CURL)

    assert req.method == "GET"
    assert req.base_url == "https://api.example.com"
    assert req.pathname == "/users/42"
    assert req.path_segments == ["users", "42"]
    assert req.query_params == {"limit": "10"}
    assert req.headers == {"X-Api-Key": "sk-ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"}
    assert req.url == "https://api.example.com/users/42?limit=10"
    assert req.body is None
    assert req.has_body is False
    assert req.command == USERS_CURL


def test_parse_continuations_json_body_infers_post():
    req = parse_curl_command(HEYREACH_CURL)

    assert req.method == "POST"
    assert req.body_mode == "json"
    assert req.body == {"offset": 0, "keyword": "", "statuses": [], "accountIds": [], "limit": 10}
    assert req.path_segments == ["api", "public", "campaign", "GetAll"]
    # literal $VAR is kept unless env placeholders are requested
    assert req.headers["X-API-KEY"] == "$HEYREACH_API_KEY"
    assert req.headers["Accept"] == "text/plain"


def test_env_placeholders_option():
    req = parse_curl_command(HEYREACH_CURL, env_placeholders=True)
    assert req.headers["X-API-KEY"] == "{{env:HEYREACH_API_KEY}}"


def test_explicit_method_overrides_body_inference():
    req = parse_curl_command("curl -X GET https://api.example.com/search -d '{\"q\": \"x\"}'")
    assert req.method == "GET"
    assert req.body == {"q": "x"}


def test_explicit_method_is_uppercased():
    req = parse_curl_command("curl --request patch https://api.example.com/items/7 --data '{}'")
    assert req.method == "PATCH"
    assert req.body == {}


def test_non_json_body_is_kept_raw():
    req = parse_curl_command("curl https://api.example.com/form -d 'name=foo&x=1'")
    assert req.method == "POST"
    assert req.body_mode == "raw"
    assert req.body == "name=foo&x=1"


def test_repeated_data_flags_are_joined():
    req = parse_curl_command("curl https://api.example.com/form -d a=1 -d b=2")
    assert req.body == "a=1&b=2"


def test_duplicate_headers_last_value_wins():
    req = parse_curl_command(
        "curl https://api.example.com/x -H 'X-Trace: one' -H 'X-Trace: two' -H 'X-Empty:'"
    )
    assert req.headers == {"X-Trace": "two", "X-Empty": ""}


def test_duplicate_query_keys_last_value_wins():
    req = parse_curl_command("curl 'https://api.example.com/x?a=1&a=2&b='")
    assert req.query_params == {"a": "2", "b": ""}
    assert req.url == "https://api.example.com/x?a=2&b="


def test_empty_path_segments_are_dropped():
    req = parse_curl_command("curl https://api.example.com//v1///users/")
    assert req.path_segments == ["v1", "users"]
    assert req.pathname == "/v1/users"


def test_bare_host_normalizes_to_root_path():
    req = parse_curl_command("curl https://api.example.com")
    assert req.path_segments == []
    assert req.pathname == "/"
    assert req.url == "https://api.example.com/"


def test_url_flag_and_skipped_value_flags():
    req = parse_curl_command("curl -m 60 -L --url https://api.example.com/v1/models -s")
    assert req.url == "https://api.example.com/v1/models"


def test_basic_auth_becomes_authorization_header():
    req = parse_curl_command("curl -u user:pass https://api.example.com/me")
    assert req.headers["Authorization"] == "Basic dXNlcjpwYXNz"


def test_basic_auth_requires_colon():
    with pytest.raises(ParseError):
        parse_curl_command("curl -u user https://api.example.com/me")


def test_user_agent_flag():
    req = parse_curl_command("curl -A 'probe/1.0' https://api.example.com/")
    assert req.headers["User-Agent"] == "probe/1.0"


def test_get_flag_moves_data_into_query():
    req = parse_curl_command("curl -G https://api.example.com/search -d q=cats -d page=2")
    assert req.method == "GET"
    assert req.body is None
    assert req.query_params == {"q": "cats", "page": "2"}
    assert req.url == "https://api.example.com/search?q=cats&page=2"


def test_json_flag_sets_default_headers():
    req = parse_curl_command("curl --json '{\"a\": 1}' https://api.example.com/things")
    assert req.method == "POST"
    assert req.body == {"a": 1}
    assert req.headers["Content-Type"] == "application/json"
    assert req.headers["Accept"] == "application/json"


@pytest.mark.parametrize(
    "text",
    [
        "curl https://api.example.com/search --data-urlencode 'q=a b'",
        "curl --data-urlencode 'q=a b' https://api.example.com/search",
    ],
)
def test_data_urlencode_either_side_of_url(text):
    req = parse_curl_command(text)
    assert req.url == "https://api.example.com/search"
    assert req.method == "POST"
    assert req.body == "q=a%20b"
    assert req.body_mode == "raw"


def test_data_urlencode_forms_are_joined():
    req = parse_curl_command(
        "curl https://api.example.com/notes --data-urlencode 'note=x&y' --data-urlencode '=bare value' -d 'n=1'"
    )
    assert req.body == "note=x%26y&bare%20value&n=1"


def test_data_urlencode_with_get_goes_to_query():
    req = parse_curl_command("curl -G https://api.example.com/search --data-urlencode 'q=a b&c'")
    assert req.method == "GET"
    assert req.body is None
    assert req.query_params == {"q": "a b&c"}


def test_data_urlencode_keeps_env_placeholders():
    req = parse_curl_command(
        "curl https://api.example.com/token --data-urlencode 'secret=$CLIENT SECRET'",
        env_placeholders=True,
    )
    assert req.body == "secret={{env:CLIENT}}%20SECRET"


@pytest.mark.parametrize(
    "text",
    [
        "curl -XDELETE https://api.example.com/items/7",
        "curl --request=DELETE https://api.example.com/items/7",
        "curl -X delete https://api.example.com/items/7",
    ],
)
def test_attached_method_forms(text):
    req = parse_curl_command(text)
    assert req.method == "DELETE"
    assert req.path_segments == ["items", "7"]


def test_attached_header_and_data():
    req = parse_curl_command("curl -H'X-A: 1' --header='X-B: 2' -d'{\"a\": 1}' https://api.example.com/x -sL")
    assert req.headers == {"X-A": "1", "X-B": "2"}
    assert req.body == {"a": 1}
    assert req.method == "POST"


def test_data_starting_with_a_flag_is_not_split():
    req = parse_curl_command("curl https://api.example.com/x -d '-Xfoo'")
    assert req.method == "POST"
    assert req.body == "-Xfoo"


def test_encoded_path_segments_are_decoded():
    req = parse_curl_command("curl 'https://api.example.com/files/a%20b/c%3Fd%2Fe'")
    assert req.path_segments == ["files", "a b", "c?d/e"]
    assert req.pathname == "/files/a%20b/c%3Fd%2Fe"
    assert req.url == "https://api.example.com/files/a%20b/c%3Fd%2Fe"


def test_debug_log_redacts_url(caplog):
    url = "https://api.example.com/x?api_key=abcdef0123456789"
    with caplog.at_level("DEBUG", logger="tooling.curl_templates.parser"):
        parse_curl_command(f"curl '{url}'")
    assert "parsed curl" in caplog.text
    assert url not in caplog.text
    assert "abcdef0123456789" not in caplog.text


@pytest.mark.parametrize(
    "text",
    [
        "",
        "curl",
        "curl -H 'X-A: 1'",
        "curl -X",
        "curl 'https://api.example.com/unterminated",
        "curl api.example.com/no-scheme",
        "curl -X BREW https://api.example.com/coffee",
    ],
)
def test_parse_errors(text):
    with pytest.raises(ParseError):
        parse_curl_command(text)


def test_parse_error_is_a_value_error():
    with pytest.raises(ValueError):
        parse_curl_command("curl -H 'X-A: 1'")


@pytest.mark.parametrize(
    "text",
    [
        USERS_CURL,
        HEYREACH_CURL,
        "curl https://api.example.com/form -d 'name=foo&x=1'",
        "curl -X DELETE 'https://api.example.com/items/7?hard=true'",
        "curl 'https://api.example.com/files/a%20b/c%3Fd'",
        "curl https://api.example.com/echo -d '\"just a string\"'",
        "curl -X PUT https://api.example.com/odd -H \"X-Quote: it's\" -d '[1, {\"a b\": null}]'",
    ],
)
def test_render_then_parse_is_stable(text):
    first = parse_curl_command(text)
    rendered = render_curl_command(first)
    second = parse_curl_command(rendered)

    assert second.to_dict() == first.to_dict()
    # and rendering is a fixed point
    assert render_curl_command(second) == rendered


def test_render_shape():
    req = parse_curl_command(USERS_CURL)
    assert render_curl_command(req) == (
        "curl -X GET 'https://api.example.com/users/42?limit=10' \\\n"
        "  -H 'X-Api-Key: sk-ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789'"
    )
