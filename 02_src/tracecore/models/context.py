"""Global context shared by the event pipeline and the version store."""

import copy
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields

_MAPPING_FIELDS = ("context_details", "extra_attributes")
_IDENTITY_FIELDS = ("user_id", "session_id")


@dataclass
class GlobalContext:
    """Live, host-owned context flattened into every new event."""

    user_id: str = ""
    session_id: str = ""
    app_version: str | None = None
    client_info: str | None = None
    current_view: str | None = None  # e.g. "chat", "weaver", "editor"
    context_details: dict = field(default_factory=dict)
    extra_attributes: dict = field(default_factory=dict)  # e.g. active project id/name

    def update(self, **changes) -> None:
        """Shallow-merge changes into the live context."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown context fields: {', '.join(sorted(unknown))}")

        normalized = {}
        for name, value in changes.items():
            if name in _MAPPING_FIELDS:
                if value is None:
                    value = {}
                elif not isinstance(value, Mapping):
                    raise TypeError(
                        f"Context field {name} must be a mapping, got {type(value).__name__}"
                    )
                value = dict(value)
            elif name in _IDENTITY_FIELDS and value is None:
                value = ""
            normalized[name] = value

        for name, value in normalized.items():
            setattr(self, name, value)

    def snapshot(self) -> dict:
        """Detached copy of the current values."""
        return copy.deepcopy(asdict(self))

    @property
    def has_identity(self) -> bool:
        return bool(self.user_id and self.session_id)
