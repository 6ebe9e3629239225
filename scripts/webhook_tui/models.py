from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Union

NetworkErrorKind = Literal["timeout", "connect", "other"]


@dataclass(frozen=True)
class FieldDefinition:
    kind: str
    label: str
    placeholder: str | None = None
    required: bool = False
    options: tuple[str, ...] = ()
    default: str | None = None

    @property
    def initial_value(self) -> str:
        return self.default if self.default is not None else ""


@dataclass(frozen=True)
class WebhookSettings:
    username: str | None = None
    avatar_url: str | None = None
    color: int | None = None


@dataclass(frozen=True)
class Template:
    """A declarative form.

    ``fields`` keeps declaration order; ``field_index`` maps each key to its
    position so lookups by key do not need a scan.
    """

    template_id: str
    name: str
    description: str
    fields: tuple[tuple[str, FieldDefinition], ...] = ()
    webhook: WebhookSettings = field(default_factory=WebhookSettings)
    field_index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "field_index", {key: idx for idx, (key, _) in enumerate(self.fields)})

    @property
    def field_count(self) -> int:
        return len(self.fields)

    @property
    def keys(self) -> list[str]:
        return [key for key, _ in self.fields]

    def get_field(self, key: str) -> FieldDefinition | None:
        idx = self.field_index.get(key)
        if idx is None:
            return None
        return self.fields[idx][1]

    def field_at(self, cursor: int) -> tuple[str, FieldDefinition] | None:
        if 0 <= cursor < len(self.fields):
            return self.fields[cursor]
        return None


@dataclass(frozen=True)
class FormSession:
    template: Template
    cursor: int = 0
    values: dict[str, str] = field(default_factory=dict)

    @classmethod
    def start(cls, template: Template) -> "FormSession":
        return cls(
            template=template,
            cursor=0,
            values={key: fdef.initial_value for key, fdef in template.fields},
        )

    @property
    def current_key(self) -> str:
        entry = self.template.field_at(self.cursor)
        return entry[0] if entry else ""

    @property
    def current_value(self) -> str:
        return self.values.get(self.current_key, "")

    def value(self, key: str) -> str:
        return self.values.get(key, "")

    def with_cursor(self, cursor: int) -> "FormSession":
        return FormSession(template=self.template, cursor=cursor, values=self.values)

    def with_value(self, key: str, value: str) -> "FormSession":
        if key not in self.values:
            return self
        values = dict(self.values)
        values[key] = value
        return FormSession(template=self.template, cursor=self.cursor, values=values)

    def missing_required(self) -> list[str]:
        return [
            fdef.label
            for key, fdef in self.template.fields
            if fdef.required and not self.values.get(key, "")
        ]


@dataclass(frozen=True)
class Success:
    status: int = 200

    def describe(self) -> str:
        return "Message sent successfully."


@dataclass(frozen=True)
class HttpError:
    status: int
    body: str

    def describe(self) -> str:
        return f"HTTP {self.status}: {self.body}"


@dataclass(frozen=True)
class NetworkError:
    kind: NetworkErrorKind
    detail: str = ""

    def describe(self) -> str:
        if self.kind == "timeout":
            head = "Connection timeout"
        elif self.kind == "connect":
            head = "Connection error - check your internet connection"
        else:
            head = "Request error"
        return f"{head}: {self.detail}" if self.detail else head


DispatchOutcome = Union[Success, HttpError, NetworkError]


@dataclass(frozen=True)
class EmbedField:
    name: str
    value: str
    inline: bool = False


@dataclass(frozen=True)
class Message:
    title: str
    description: str
    color: int | None = None
    fields: tuple[EmbedField, ...] = ()
    username: str | None = None
    avatar_url: str | None = None


@dataclass(frozen=True)
class LoadDiagnostic:
    path: Path
    message: str

    def format_line(self) -> str:
        return f"{self.path.name}: {self.message}"


@dataclass
class AppConfig:
    webhook_url: str
    templates_dir: Path = Path("templates")
    log_dir: Path | None = None
    timeout: float = 30.0
    plain: bool = False
    template: str = ""
    push: bool = False
    overrides: dict[str, str] = field(default_factory=dict)
