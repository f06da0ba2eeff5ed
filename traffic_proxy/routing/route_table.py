import json
import logging
import re
from typing import Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict, PrivateAttr, TypeAdapter

logger = logging.getLogger("uvicorn.error")


class RouteRule(BaseModel):
    """A regex pattern tested against the request path and query string, and the
    base URL that matching requests are forwarded to."""

    model_config = ConfigDict(frozen=True)

    pattern: str
    target: str

    _compiled: re.Pattern = PrivateAttr()

    def model_post_init(self, __context) -> None:
        self._compiled = re.compile(self.pattern)

    def matches(self, path: str) -> bool:
        # Unanchored: a match anywhere in the path counts
        return self._compiled.search(path) is not None


DEFAULT_ROUTES: Tuple[RouteRule, ...] = (
    RouteRule(pattern="/api/user/.*", target="http://localhost:3001"),
    RouteRule(pattern="/api/order/.*", target="http://localhost:3002"),
)

_rules_adapter = TypeAdapter(list[RouteRule])


class RouteTable:
    """Ordered, read-only list of routing rules. The first matching rule wins."""

    def __init__(self, rules: Iterable[RouteRule]):
        self._rules = tuple(rules)

    @property
    def rules(self) -> Tuple[RouteRule, ...]:
        return self._rules

    def __len__(self) -> int:
        return len(self._rules)

    @classmethod
    def load(cls, source: str) -> "RouteTable":
        """
        Load rules from a JSON file holding an array of {pattern, target} objects.

        Any failure (missing file, invalid JSON, wrong shape, invalid regex) is
        logged as a warning and the built-in defaults are used instead.
        """
        try:
            with open(source, "r", encoding="utf-8") as fh:
                data = json.load(fh)
            rules = _rules_adapter.validate_python(data)
        except (OSError, ValueError, re.error) as e:
            logger.warning(
                f"[Routes] Failed to load routes from {source}: {e}. Using default routes."
            )
            return cls(DEFAULT_ROUTES)

        logger.info(
            "[Routes] Loaded routes: %s",
            json.dumps([rule.model_dump() for rule in rules], indent=2),
        )
        return cls(rules)

    def match(self, path: str) -> Optional[RouteRule]:
        """Return the first rule whose pattern matches ``path`` (path + query string), or None."""
        for rule in self._rules:
            if rule.matches(path):
                return rule
        return None
