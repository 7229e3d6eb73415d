import pytest

import sys, os
target_path = os.path.abspath(os.path.join(os.path.dirname(os.path.abspath(__file__)), "../.."))
if target_path not in sys.path:
    sys.path.insert(0, target_path)

from tooling.curl_templates import CurlTemplateCompiler, SecretResolver

USERS_CURL = (
    "curl -X GET 'https://api.example.com/users/42?limit=10' "
    "-H 'X-Api-Key: sk-ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789'"
)

CHAT_CURL = r"""
curl https://api.openai.com/v1/chat/completions \
  -H "Content-Type: application/json" \
  -H "Authorization: Bearer {{env:OPENAI_API_KEY}}" \
  -d '{
    "model": "gpt-4o-mini",
    "temperature": 0.2,
    "stream": false,
    "messages": [
      { "role": "user", "content": "Say hello" }
    ],
    "metadata": { "team": "growth", "tags": ["a", ["b", "c"]] }
  }'
"""


@pytest.fixture(scope="session")
def compiler() -> CurlTemplateCompiler:
    # Secrets resolve from the mapping first, env second
    secrets = SecretResolver(mapping={"OPENAI_API_KEY": "sk-test"}, auto_dotenv=False)
    return CurlTemplateCompiler(secrets=secrets)


@pytest.fixture
def users_request(compiler):
    return compiler.parse(USERS_CURL)


@pytest.fixture
def chat_request(compiler):
    return compiler.parse(CHAT_CURL)
