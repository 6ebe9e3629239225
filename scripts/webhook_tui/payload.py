from __future__ import annotations

from typing import Any

from .models import EmbedField, FormSession, Message, Template


def build_message(template: Template, session: FormSession) -> Message:
    """Assemble the outgoing message for ``template`` from ``session`` values.

    Fields whose current value is empty are left out entirely; the rest keep the
    template's declaration order.
    """
    fields: list[EmbedField] = []
    for key, fdef in template.fields:
        value = session.value(key)
        if not value:
            continue
        fields.append(EmbedField(name=fdef.label, value=value, inline=False))
    return Message(
        title=template.name,
        description=template.description,
        color=template.webhook.color,
        fields=tuple(fields),
        username=template.webhook.username,
        avatar_url=template.webhook.avatar_url,
    )


def to_wire(message: Message) -> dict[str, Any]:
    embed: dict[str, Any] = {
        "title": message.title,
        "description": message.description,
        "fields": [{"name": f.name, "value": f.value, "inline": f.inline} for f in message.fields],
    }
    if message.color is not None:
        embed["color"] = message.color
    body: dict[str, Any] = {"embeds": [embed]}
    if message.username:
        body["username"] = message.username
    if message.avatar_url:
        body["avatar_url"] = message.avatar_url
    return body


def preview_lines(message: Message, missing_required: list[str] | None = None) -> list[str]:
    lines = [
        f"Embed Title: {message.title}",
        f"Description: {message.description}",
        "",
        "Form Data:",
    ]
    if message.fields:
        for f in message.fields:
            lines.append(f"  > {f.name}: {f.value}")
    else:
        lines.append("  No data entered yet")
    if message.username:
        lines.append("")
        lines.append(f"Bot Name: {message.username}")
    if message.color is not None:
        lines.append(f"Colour: #{message.color:06X}")
    if missing_required:
        lines.append("")
        lines.append(f"Missing required: {', '.join(missing_required)}")
    return lines
