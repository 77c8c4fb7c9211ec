"""
Discovery Value Objects

Architectural Intent:
- Seed addresses used to reach the cluster registry (lookup locators and
  lookup groups)
- The same seed is handed to newly installed agents as their locators string
- Supports IPv6 bracket notation in LookupLocator.parse() (e.g., [::1]:4174)
"""

from dataclasses import dataclass

from stratus.domain.value_objects.node import is_valid_hostname

DEFAULT_LOOKUP_PORT = 4174


@dataclass(frozen=True)
class LookupLocator:
    host: str
    port: int = DEFAULT_LOOKUP_PORT

    def __post_init__(self) -> None:
        if not (1 <= self.port <= 65535):
            raise ValueError(f"Port must be 1-65535, got {self.port}")
        if not is_valid_hostname(self.host):
            raise ValueError(f"Invalid locator host: {self.host!r}")

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"

    @staticmethod
    def parse(locator: str) -> "LookupLocator":
        """
        Parses 'host', 'host:port' or '[::1]:port' into a LookupLocator.
        """
        host = locator.strip()
        port = DEFAULT_LOOKUP_PORT

        if host.startswith("["):
            bracket_end = host.find("]")
            if bracket_end == -1:
                raise ValueError(f"Unterminated IPv6 bracket in: {locator}")
            remainder = host[bracket_end + 1:]
            if remainder.startswith(":"):
                port = int(remainder[1:])
            host = host[1:bracket_end]
        elif host.count(":") == 1:
            host, _, port_str = host.partition(":")
            port = int(port_str)

        return LookupLocator(host=host, port=port)


@dataclass(frozen=True)
class DiscoverySeed:
    """Groups and locators used to build the shared registry handle."""
    groups: tuple[str, ...] = ()
    locators: tuple[LookupLocator, ...] = ()

    @classmethod
    def from_strings(cls, groups, locators) -> "DiscoverySeed":
        return cls(
            groups=tuple(g for g in groups if g),
            locators=tuple(LookupLocator.parse(loc) for loc in locators if loc),
        )

    def locators_string(self) -> str:
        """Comma separated host:port list, empty when no locators are set."""
        return ",".join(str(loc) for loc in self.locators)
