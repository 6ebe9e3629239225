from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from .logstore import LogStore
from .models import FieldDefinition, LoadDiagnostic, Template, WebhookSettings

TEMPLATE_SUFFIX = ".toml"
MAX_COLOR = 0xFFFFFF


class TemplateError(ValueError):
    pass


class TemplateDirError(RuntimeError):
    pass


def _require_table(doc: dict[str, Any], key: str) -> dict[str, Any]:
    value = doc.get(key)
    if not isinstance(value, dict):
        raise TemplateError(f"missing [{key}] table")
    return value


def _opt_str(table: dict[str, Any], key: str, where: str) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TemplateError(f"{where}.{key} must be a string")
    return value


def _req_str(table: dict[str, Any], key: str, where: str) -> str:
    value = _opt_str(table, key, where)
    if value is None:
        raise TemplateError(f"{where}.{key} is required")
    return value


def parse_color(raw: Any) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise TemplateError("webhook.color must be an integer or hex string")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        text = raw.strip().lower()
        if text.startswith("#"):
            text = text[1:]
        elif text.startswith("0x"):
            text = text[2:]
        try:
            value = int(text, 16)
        except ValueError as exc:
            raise TemplateError(f"webhook.color is not a hex colour: {raw!r}") from exc
    else:
        raise TemplateError("webhook.color must be an integer or hex string")
    if not 0 <= value <= MAX_COLOR:
        raise TemplateError(f"webhook.color out of range: {value}")
    return value


def parse_field(key: str, raw: Any) -> FieldDefinition:
    where = f"fields.{key}"
    if not isinstance(raw, dict):
        raise TemplateError(f"{where} must be a table")
    kind = _req_str(raw, "type", where)
    label = _req_str(raw, "label", where)
    required = raw.get("required", False)
    if not isinstance(required, bool):
        raise TemplateError(f"{where}.required must be true or false")
    options_raw = raw.get("options", [])
    if not isinstance(options_raw, list) or not all(isinstance(o, str) for o in options_raw):
        raise TemplateError(f"{where}.options must be a list of strings")
    if kind == "select" and not options_raw:
        raise TemplateError(f"{where} is a select field without options")
    return FieldDefinition(
        kind=kind,
        label=label,
        placeholder=_opt_str(raw, "placeholder", where),
        required=required,
        options=tuple(options_raw),
        default=_opt_str(raw, "default", where),
    )


def parse_template(template_id: str, doc: dict[str, Any]) -> Template:
    info = _require_table(doc, "template")
    fields_raw = _require_table(doc, "fields")
    webhook_raw = doc.get("webhook", {})
    if not isinstance(webhook_raw, dict):
        raise TemplateError("[webhook] must be a table")

    # tomllib keeps table keys in document order.
    fields = tuple((key, parse_field(key, raw)) for key, raw in fields_raw.items())
    webhook = WebhookSettings(
        username=_opt_str(webhook_raw, "username", "webhook"),
        avatar_url=_opt_str(webhook_raw, "avatar_url", "webhook"),
        color=parse_color(webhook_raw.get("color")),
    )
    return Template(
        template_id=template_id,
        name=_req_str(info, "name", "template"),
        description=_req_str(info, "description", "template"),
        fields=fields,
        webhook=webhook,
    )


def load_template_file(path: Path) -> Template:
    try:
        with path.open("rb") as fh:
            doc = tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise TemplateError(f"invalid TOML: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise TemplateError(f"not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise TemplateError(f"cannot read file: {exc}") from exc
    return parse_template(path.stem, doc)


class TemplateStore:
    def __init__(
        self,
        templates: list[tuple[str, Template]] | None = None,
        diagnostics: list[LoadDiagnostic] | None = None,
        directory: Path | None = None,
    ) -> None:
        self._templates: tuple[tuple[str, Template], ...] = tuple(templates or ())
        self._by_id = {tid: idx for idx, (tid, _) in enumerate(self._templates)}
        self.diagnostics: tuple[LoadDiagnostic, ...] = tuple(diagnostics or ())
        self.directory = directory

    @classmethod
    def load(cls, directory: Path, logstore: LogStore | None = None) -> "TemplateStore":
        if not directory.exists():
            if logstore is not None:
                logstore.append("info", "templates", f"template directory {directory} not found; no templates loaded")
            return cls(directory=directory)
        if not directory.is_dir():
            raise TemplateDirError(f"template path is not a directory: {directory}")
        try:
            paths = sorted(p for p in directory.iterdir() if p.suffix == TEMPLATE_SUFFIX and p.is_file())
        except OSError as exc:
            raise TemplateDirError(f"cannot read template directory {directory}: {exc}") from exc

        templates: list[tuple[str, Template]] = []
        diagnostics: list[LoadDiagnostic] = []
        for path in paths:
            try:
                template = load_template_file(path)
            except TemplateError as exc:
                diag = LoadDiagnostic(path=path, message=str(exc))
                diagnostics.append(diag)
                if logstore is not None:
                    logstore.append("warn", "templates", f"skipped {diag.format_line()}", ref=path.stem)
                continue
            templates.append((template.template_id, template))
            if logstore is not None:
                logstore.append(
                    "info",
                    "templates",
                    f"loaded '{template.name}' with {template.field_count} fields",
                    ref=template.template_id,
                )
        return cls(templates, diagnostics, directory)

    def __len__(self) -> int:
        return len(self._templates)

    def __bool__(self) -> bool:
        return bool(self._templates)

    @property
    def entries(self) -> tuple[tuple[str, Template], ...]:
        return self._templates

    @property
    def ids(self) -> list[str]:
        return [tid for tid, _ in self._templates]

    def at(self, index: int) -> Template:
        return self._templates[index][1]

    def get(self, template_id: str) -> Template | None:
        idx = self._by_id.get(template_id)
        if idx is None:
            return None
        return self._templates[idx][1]

    def index_of(self, template_id: str) -> int:
        return self._by_id.get(template_id, -1)
