"""Model-name routing across backend kinds.

Hides which backend serves which model. Routes are data: adding a backend
or moving a model between backends is a registry change, not a new branch
in the request path.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..config import Settings


class BackendKind(str, Enum):
    """Supported chat-completion protocols."""

    OPENAI_COMPATIBLE = "openai_compatible"  # Primary streaming backend (DeepSeek)
    LOCAL = "local"                          # OpenAI-compatible via local proxy credentials
    FLATTENED_REST = "flattened_rest"        # Gemini-style single prompt, single completion


class BackendEndpoint(BaseModel):
    """Where and how to reach one backend kind."""

    model_config = ConfigDict(frozen=True)

    base_url: str | None = Field(default=None, description="Base URL (None uses the SDK default)")
    api_key: str | None = Field(default=None, description="Credential, None when not configured")


class Route(BaseModel):
    """Result of resolving a model name."""

    model_config = ConfigDict(frozen=True)

    model: str = Field(description="Model identifier as requested")
    kind: BackendKind
    endpoint: BackendEndpoint


class BackendRegistry:
    """Static, read-only mapping of model identifiers to backends.

    Model identifiers match case-insensitively. Models without an explicit
    route go to the default kind.
    """

    def __init__(
        self,
        endpoints: dict[BackendKind, BackendEndpoint],
        routes: dict[str, BackendKind] | None = None,
        default_kind: BackendKind = BackendKind.OPENAI_COMPATIBLE,
    ) -> None:
        self._endpoints = dict(endpoints)
        self._routes = {name.lower(): kind for name, kind in (routes or {}).items()}
        self._default_kind = default_kind

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackendRegistry":
        """Build the registry from process settings."""
        endpoints = {
            BackendKind.OPENAI_COMPATIBLE: BackendEndpoint(
                base_url=settings.deepseek_base_url,
                api_key=settings.deepseek_api_key,
            ),
            BackendKind.LOCAL: BackendEndpoint(
                base_url=settings.local_base_url,
                api_key=settings.local_api_key,
            ),
            BackendKind.FLATTENED_REST: BackendEndpoint(
                base_url=settings.gemini_base_url,
                api_key=settings.gemini_api_key,
            ),
        }
        routes: dict[str, BackendKind] = {}
        for name in settings.gemini_models:
            routes[name] = BackendKind.FLATTENED_REST
        for name in settings.local_models:
            routes[name] = BackendKind.LOCAL
        return cls(endpoints, routes)

    @property
    def default_kind(self) -> BackendKind:
        return self._default_kind

    def kind_for(self, model: str) -> BackendKind:
        """Get the backend kind serving a model name."""
        return self._routes.get(model.strip().lower(), self._default_kind)

    def resolve(self, model: str) -> Route:
        """Resolve a model name to its backend kind and endpoint."""
        kind = self.kind_for(model)
        return Route(model=model, kind=kind, endpoint=self._endpoints.get(kind, BackendEndpoint()))

    def routes(self) -> dict[str, BackendKind]:
        """Explicit routes, keyed by lower-cased model name."""
        return dict(self._routes)
