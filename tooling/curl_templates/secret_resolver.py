import os
import re
from typing import Any, Callable, Iterator, Mapping, Optional

from dotenv import load_dotenv

_ENV_PLACEHOLDER_RE = re.compile(r"\{\{\s*env\s*:\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def _strings(obj: Any) -> Iterator[str]:
    if isinstance(obj, str):
        yield obj
    elif isinstance(obj, list):
        for x in obj:
            yield from _strings(x)
    elif isinstance(obj, dict):
        for v in obj.values():
            yield from _strings(v)


def placeholder_names(obj: Any) -> list[str]:
    """Names of the {{env:NAME}} placeholders inside obj, in first-seen order."""
    seen: dict[str, None] = {}
    for s in _strings(obj):
        for m in _ENV_PLACEHOLDER_RE.finditer(s):
            seen.setdefault(m.group(1), None)
    return list(seen)


class SecretResolver:
    """
    Supplies the values behind {{env:NAME}} placeholders when a concrete
    request is handed to httpx. Templates and backend schemas only ever
    carry the placeholder text.

    Lookup order:
      1) explicit mapping passed at init
      2) os.environ (optionally primed from a .env file)
      3) optional fallback callable
    """
    def __init__(
        self,
        mapping: Optional[Mapping[str, str]] = None,
        fallback: Optional[Callable[[str], Optional[str]]] = None,
        auto_dotenv: bool = False,
        dotenv_path: Optional[str] = None,
        dotenv_override: bool = False,
    ):
        if auto_dotenv:
            load_dotenv(dotenv_path=dotenv_path, override=dotenv_override)

        self._mapping = dict(mapping or {})
        self._fallback = fallback

    def get(self, name: str) -> Optional[str]:
        if name in self._mapping:
            return self._mapping[name]
        if name in os.environ:
            return os.environ[name]
        if self._fallback is not None:
            return self._fallback(name)
        return None

    def require(self, name: str) -> str:
        v = self.get(name)
        if v is None:
            raise KeyError(f"Missing required secret: {name}")
        return v

    def missing(self, obj: Any) -> list[str]:
        """Placeholder names inside obj that this resolver cannot supply."""
        return [n for n in placeholder_names(obj) if self.get(n) is None]

    def render(self, obj: Any) -> Any:
        """
        Copy of obj with every {{env:NAME}} inside its strings replaced.
        Lists and dicts are walked; other values are returned as they are.
        Raises KeyError naming the first secret that cannot be resolved.
        """
        if isinstance(obj, str):
            return _ENV_PLACEHOLDER_RE.sub(lambda m: self.require(m.group(1)), obj)
        if isinstance(obj, list):
            return [self.render(x) for x in obj]
        if isinstance(obj, dict):
            return {str(k): self.render(v) for k, v in obj.items()}
        return obj
