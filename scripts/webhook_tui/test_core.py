from __future__ import annotations

import curses
import io
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from scripts.webhook_tui.app import main, run_plain_console, run_push
from scripts.webhook_tui.controller import WizardController
from scripts.webhook_tui.keys import CTRL_U, CTRL_X, translate_key
from scripts.webhook_tui.logstore import LogStore
from scripts.webhook_tui.models import (
    AppConfig,
    EmbedField,
    FieldDefinition,
    FormSession,
    Message,
    Success,
    Template,
    WebhookSettings,
)
from scripts.webhook_tui.payload import build_message, preview_lines, to_wire
from scripts.webhook_tui.screens import draw_editing, draw_preview, draw_selection
from scripts.webhook_tui.state import (
    Action,
    Completed,
    Dispatching,
    Editing,
    Previewing,
    Selecting,
    drop_last_char,
    initial_state,
    reduce,
)
from scripts.webhook_tui.system_ops import (
    ConfigError,
    EndpointError,
    build_config,
    parse_webhook_url,
    redact_url,
    webhook_token,
)
from scripts.webhook_tui.templates import TemplateDirError, TemplateStore, parse_color
from scripts.webhook_tui.theme import Theme

ANNOUNCE_TOML = """
[template]
name = "Announcement"
description = "Team news"

[fields.title]
type = "text"
label = "Title"
required = true

[fields.body]
type = "text"
label = "Body"
placeholder = "Say something"

[fields.level]
type = "select"
label = "Level"
options = ["low", "high"]
default = "low"

[webhook]
username = "Herald"
color = "#FF8800"
"""


def _template(tid: str, *fields: tuple[str, FieldDefinition], color: int | None = None) -> Template:
    return Template(
        template_id=tid,
        name=tid.upper(),
        description=f"{tid} description",
        fields=tuple(fields),
        webhook=WebhookSettings(color=color),
    )


def _store() -> TemplateStore:
    a = _template(
        "a",
        ("summary", FieldDefinition(kind="text", label="Summary", default="draft")),
        ("notes", FieldDefinition(kind="text", label="Notes")),
    )
    b = _template("b", ("who", FieldDefinition(kind="text", label="Who", required=True)))
    return TemplateStore([("a", a), ("b", b)])


def _run(state, store, *actions):  # type: ignore[no-untyped-def]
    for action in actions:
        state = reduce(state, action, store)
    return state


class FakeSender:
    def __init__(self, outcome=None) -> None:  # type: ignore[no-untyped-def]
        self.url = "https://discord.com/api/webhooks/1/secret"
        self.outcome = outcome or Success(204)
        self.messages: list[Message] = []

    def send(self, message: Message):  # type: ignore[no-untyped-def]
        self.messages.append(message)
        return self.outcome


class TemplateStoreTests(unittest.TestCase):
    def test_loads_sorted_and_keeps_field_order(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "zeta.toml").write_text(ANNOUNCE_TOML, encoding="utf-8")
            (root / "alpha.toml").write_text(
                '[template]\nname = "Alpha"\ndescription = "first"\n\n'
                '[fields.zz]\ntype = "text"\nlabel = "Zz"\n\n[fields.aa]\ntype = "text"\nlabel = "Aa"\n',
                encoding="utf-8",
            )
            (root / "notes.txt").write_text("ignored", encoding="utf-8")
            store = TemplateStore.load(root)
            reloaded = TemplateStore.load(root)

        self.assertEqual(store.ids, ["alpha", "zeta"])
        self.assertEqual(store.at(0).keys, ["zz", "aa"])
        announce = store.get("zeta")
        assert announce is not None
        self.assertEqual(announce.keys, ["title", "body", "level"])
        self.assertEqual(announce.webhook.color, 0xFF8800)
        self.assertEqual(announce.webhook.username, "Herald")
        self.assertEqual(FormSession.start(announce).value("level"), "low")
        self.assertEqual(store.diagnostics, ())
        self.assertEqual(reloaded.ids, store.ids)
        for (_, first), (_, again) in zip(store.entries, reloaded.entries):
            self.assertEqual(again.keys, first.keys)

    def test_bad_files_are_skipped_with_diagnostics(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            root = Path(td)
            (root / "good.toml").write_text(ANNOUNCE_TOML, encoding="utf-8")
            (root / "broken.toml").write_text("[template\nname=", encoding="utf-8")
            (root / "nofields.toml").write_text('[template]\nname = "x"\ndescription = "y"\n', encoding="utf-8")
            (root / "select.toml").write_text(
                '[template]\nname = "S"\ndescription = "s"\n\n[fields.pick]\ntype = "select"\nlabel = "Pick"\n',
                encoding="utf-8",
            )
            logstore = LogStore(max_entries=32, log_dir=root / "logs")
            store = TemplateStore.load(root, logstore)

            self.assertEqual(store.ids, ["good"])
            skipped = sorted(d.path.name for d in store.diagnostics)
            self.assertEqual(skipped, ["broken.toml", "nofields.toml", "select.toml"])
            warnings = logstore.filtered({"warn"}, "", {"templates"})
            self.assertEqual(len(warnings), 3)

    def test_missing_directory_gives_empty_store(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = TemplateStore.load(Path(td) / "nope")
        self.assertEqual(len(store), 0)
        self.assertFalse(store)
        self.assertEqual(initial_state(store).status_line, "No templates found.")

    def test_file_in_place_of_directory_is_fatal(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "templates"
            path.write_text("", encoding="utf-8")
            with self.assertRaises(TemplateDirError):
                TemplateStore.load(path)

    def test_parse_color_forms(self) -> None:
        self.assertEqual(parse_color("#00ff00"), 0x00FF00)
        self.assertEqual(parse_color("0x10"), 16)
        self.assertEqual(parse_color(255), 255)
        self.assertIsNone(parse_color(None))


class ReducerTests(unittest.TestCase):
    def test_selection_wraps_both_ways(self) -> None:
        store = _store()
        state = initial_state(store)
        self.assertEqual(reduce(state, Action("prev"), store).selected, 1)
        self.assertEqual(_run(state, store, Action("next"), Action("next")).selected, 0)

    def test_preselect_uses_template_id(self) -> None:
        store = _store()
        self.assertEqual(initial_state(store, "b").selected, 1)
        self.assertEqual(initial_state(store, "missing").selected, 0)

    def test_confirm_with_no_templates_stays_selecting(self) -> None:
        store = TemplateStore()
        state = reduce(initial_state(store), Action("confirm"), store)
        self.assertIsInstance(state.screen, Selecting)
        self.assertIsNone(state.session)

    def test_field_navigation_clamps(self) -> None:
        store = _store()
        state = _run(initial_state(store), store, Action("confirm"), Action("prev"))
        self.assertEqual(state.screen, Editing(cursor=0))
        state = _run(state, store, Action("next"), Action("next"), Action("next"))
        self.assertEqual(state.screen, Editing(cursor=1))
        assert state.session is not None
        self.assertEqual(state.session.cursor, 1)

    def test_typing_edits_and_message_skips_empty_fields(self) -> None:
        store = _store()
        state = reduce(initial_state(store), Action("confirm"), store)
        assert state.session is not None
        self.assertEqual(state.session.value("summary"), "draft")
        state = _run(state, store, Action("char", char="x"), Action("next"), Action("confirm"))
        self.assertEqual(state.screen, Previewing(cursor=1))
        assert state.session is not None
        self.assertEqual(state.session.value("summary"), "draftx")
        message = build_message(state.session.template, state.session)
        self.assertEqual(message.fields, (EmbedField(name="Summary", value="draftx"),))

    def test_backspace_and_clear(self) -> None:
        store = _store()
        state = _run(initial_state(store), store, Action("confirm"), Action("backspace"))
        assert state.session is not None
        self.assertEqual(state.session.value("summary"), "draf")
        state = reduce(state, Action("clear"), store)
        assert state.session is not None
        self.assertEqual(state.session.value("summary"), "")
        self.assertIs(reduce(state, Action("backspace"), store), state)

    def test_control_characters_are_ignored(self) -> None:
        store = _store()
        state = reduce(initial_state(store), Action("confirm"), store)
        self.assertIs(reduce(state, Action("char", char="\x07"), store), state)

    def test_reentering_template_resets_values(self) -> None:
        store = _store()
        state = _run(
            initial_state(store),
            store,
            Action("confirm"),
            Action("char", char="!"),
            Action("cancel"),
            Action("confirm"),
        )
        assert state.session is not None
        self.assertEqual(state.session.value("summary"), "draft")

    def test_select_options_cycle(self) -> None:
        pick = FieldDefinition(kind="select", label="Pick", options=("one", "two", "three"))
        store = TemplateStore([("s", _template("s", ("pick", pick)))])
        state = _run(initial_state(store), store, Action("confirm"), Action("option_next"))
        assert state.session is not None
        self.assertEqual(state.session.value("pick"), "one")
        state = _run(state, store, Action("option_next"), Action("option_next"), Action("option_next"))
        assert state.session is not None
        self.assertEqual(state.session.value("pick"), "three")
        state = reduce(state, Action("option_prev"), store)
        assert state.session is not None
        self.assertEqual(state.session.value("pick"), "two")

    def test_dispatch_lifecycle(self) -> None:
        store = _store()
        state = _run(initial_state(store), store, Action("confirm"), Action("confirm"), Action("confirm"))
        self.assertEqual(state.screen, Dispatching(cursor=0, dispatch_id=1))
        stale = reduce(state, Action("dispatch_done", outcome=Success(), dispatch_id=7), store)
        self.assertIs(stale, state)
        done = reduce(state, Action("dispatch_done", outcome=Success(), dispatch_id=1), store)
        self.assertEqual(done.screen, Completed(outcome=Success()))
        back = reduce(done, Action("cancel"), store)
        self.assertIsInstance(back.screen, Selecting)
        self.assertIsNone(back.session)

    def test_cancel_while_sending_returns_to_preview(self) -> None:
        store = _store()
        state = _run(initial_state(store), store, Action("confirm"), Action("confirm"), Action("confirm"), Action("cancel"))
        self.assertEqual(state.screen, Previewing(cursor=0))
        late = reduce(state, Action("dispatch_done", outcome=Success(), dispatch_id=1), store)
        self.assertIs(late, state)
        again = reduce(state, Action("confirm"), store)
        self.assertEqual(again.screen, Dispatching(cursor=0, dispatch_id=2))

    def test_quit_from_any_screen(self) -> None:
        store = _store()
        state = _run(initial_state(store), store, Action("confirm"), Action("quit"))
        self.assertFalse(state.running)

    def test_missing_required_is_reported_not_blocking(self) -> None:
        store = _store()
        state = _run(initial_state(store), store, Action("next"), Action("confirm"), Action("confirm"))
        self.assertIsInstance(state.screen, Previewing)
        self.assertIn("Who", state.status_line)


class DropLastCharTests(unittest.TestCase):
    def test_removes_whole_user_visible_characters(self) -> None:
        self.assertEqual(drop_last_char("abc"), "ab")
        self.assertEqual(drop_last_char("cafe\u0301"), "caf")
        self.assertEqual(drop_last_char("ok\U0001F44D\U0001F3FD"), "ok")
        self.assertEqual(drop_last_char("a\U0001F468\u200d\U0001F469"), "a")
        self.assertEqual(drop_last_char(""), "")

    def test_flag_pairs_are_one_character(self) -> None:
        us = "\U0001F1FA\U0001F1F8"
        fr = "\U0001F1EB\U0001F1F7"
        self.assertEqual(drop_last_char(us), "")
        self.assertEqual(drop_last_char("go " + us), "go ")
        self.assertEqual(drop_last_char(us + fr), us)
        self.assertEqual(drop_last_char(us + "\U0001F1EB"), us)


class PayloadTests(unittest.TestCase):
    def test_wire_format(self) -> None:
        message = Message(
            title="T",
            description="D",
            color=0x123456,
            fields=(EmbedField(name="A", value="1"),),
            username="Bot",
        )
        wire = to_wire(message)
        self.assertEqual(
            wire,
            {
                "embeds": [
                    {
                        "title": "T",
                        "description": "D",
                        "fields": [{"name": "A", "value": "1", "inline": False}],
                        "color": 0x123456,
                    }
                ],
                "username": "Bot",
            },
        )

    def test_wire_omits_unset_options(self) -> None:
        wire = to_wire(Message(title="T", description="D"))
        self.assertNotIn("color", wire["embeds"][0])
        self.assertNotIn("username", wire)
        self.assertNotIn("avatar_url", wire)
        self.assertEqual(wire["embeds"][0]["fields"], [])

    def test_preview_lines(self) -> None:
        lines = preview_lines(Message(title="T", description="D"), ["Who"])
        self.assertIn("Embed Title: T", lines)
        self.assertIn("  No data entered yet", lines)
        self.assertEqual(lines[-1], "Missing required: Who")


class ConfigTests(unittest.TestCase):
    def test_endpoint_forms(self) -> None:
        full = "https://discord.com/api/webhooks/123/abc-DEF_9"
        self.assertEqual(parse_webhook_url(full), full)
        self.assertEqual(parse_webhook_url("discord.com/api/webhooks/123/abc"), "https://discord.com/api/webhooks/123/abc")
        self.assertEqual(parse_webhook_url(" 123/abc "), "https://discord.com/api/webhooks/123/abc")
        for bad in ("", "nope", "http://discord.com/api/webhooks/1/a", "abc/def"):
            with self.assertRaises(EndpointError):
                parse_webhook_url(bad)

    def test_redact_hides_token(self) -> None:
        self.assertEqual(
            redact_url("https://discord.com/api/webhooks/123/secret"),
            "https://discord.com/api/webhooks/123/***",
        )

    def test_build_config_reads_env(self) -> None:
        config = build_config(
            ["-t", "1/tok"],
            env={"PTWEBHOOK_TEMPLATES_DIR": "/srv/tpl", "PTWEBHOOK_TIMEOUT": "5"},
        )
        self.assertEqual(config.templates_dir, Path("/srv/tpl"))
        self.assertEqual(config.timeout, 5.0)
        self.assertFalse(config.push)

    def test_build_config_rejects_bad_combinations(self) -> None:
        with self.assertRaises(ConfigError):
            build_config(["-t", "1/tok", "--push"], env={})
        with self.assertRaises(ConfigError):
            build_config(["-t", "1/tok", "--set", "a=b"], env={})
        with self.assertRaises(ConfigError):
            build_config(["-t", "1/tok"], env={"PTWEBHOOK_TIMEOUT": "0"})

    def test_push_overrides(self) -> None:
        config = build_config(["-t", "1/tok", "--push", "--template", "a", "--set", "summary=hi=there"], env={})
        self.assertEqual(config.overrides, {"summary": "hi=there"})

    def test_main_rejects_bad_endpoint(self) -> None:
        with mock.patch("sys.stderr", new_callable=io.StringIO) as err:
            self.assertEqual(main(["-t", "not-a-webhook"]), 1)
        self.assertIn("Invalid webhook URL format", err.getvalue())


class LogStoreTests(unittest.TestCase):
    def test_logstore_falls_back_when_preferred_dir_unwritable(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            home = Path(td)
            real_mkdir = Path.mkdir

            def fake_mkdir(path_obj: Path, *args: object, **kwargs: object) -> None:
                if str(path_obj) == "/var/log/ptwebhook":
                    raise PermissionError("denied")
                return real_mkdir(path_obj, *args, **kwargs)

            with mock.patch("scripts.webhook_tui.logstore.Path.home", return_value=home), mock.patch(
                "scripts.webhook_tui.logstore.Path.mkdir",
                new=fake_mkdir,
            ):
                store = LogStore(max_entries=32, log_dir=Path("/var/log/ptwebhook"))
                expected_root = home / ".cache" / "ptwebhook" / "logs"
                self.assertTrue(str(store.log_dir).startswith(str(expected_root)))
                self.assertTrue(store.log_path.exists())
                self.assertIn("fallback", store.entries[0].message)

    def test_log_category_filtering(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            store = LogStore(max_entries=32, log_dir=Path(td))
            store.append("warn", "templates", "skipped bad.toml")
            store.append("info", "dispatch", "delivered")
            only_templates = store.filtered({"warn", "info"}, "", {"templates"})
            self.assertEqual(len(only_templates), 1)
            self.assertEqual(only_templates[0].category, "templates")
            self.assertEqual(len(store.filtered({"info"}, "DELIVERED")), 1)

    def test_registered_secrets_never_reach_the_file(self) -> None:
        url = "https://discord.com/api/webhooks/42/s3cr3t-token"
        with tempfile.TemporaryDirectory() as td:
            store = LogStore(max_entries=8, log_dir=Path(td))
            store.add_secret(webhook_token(url))
            entry = store.append("error", "dispatch", f"POST {url} failed")
            self.assertEqual(entry.message, "POST https://discord.com/api/webhooks/42/*** failed")
            self.assertNotIn("s3cr3t", store.log_path.read_text(encoding="utf-8"))


class KeyTests(unittest.TestCase):
    def test_editing_keys(self) -> None:
        screen = Editing(cursor=0)
        self.assertEqual(translate_key(screen, "q"), Action("char", char="q"))
        self.assertEqual(translate_key(screen, "\t"), Action("next"))
        self.assertEqual(translate_key(screen, curses.KEY_UP), Action("prev"))
        self.assertEqual(translate_key(screen, 127), Action("backspace"))
        self.assertEqual(translate_key(screen, CTRL_U), Action("clear"))
        self.assertEqual(translate_key(screen, "\x1b"), Action("cancel"))
        self.assertEqual(translate_key(screen, "\n"), Action("confirm"))
        self.assertEqual(translate_key(screen, curses.KEY_RIGHT), Action("option_next"))
        self.assertIsNone(translate_key(screen, curses.KEY_RESIZE))

    def test_quit_keys(self) -> None:
        self.assertEqual(translate_key(Selecting(), "q"), Action("quit"))
        self.assertEqual(translate_key(Selecting(), 27), Action("quit"))
        self.assertEqual(translate_key(Editing(), CTRL_X), Action("quit"))
        self.assertEqual(translate_key(Previewing(), "\x1b"), Action("cancel"))
        self.assertEqual(translate_key(Dispatching(), "\x1b"), Action("cancel"))
        self.assertIsNone(translate_key(Dispatching(), "\n"))
        self.assertEqual(translate_key(Completed(outcome=Success()), " "), Action("confirm"))


class RecordingWindow:
    def __init__(self, h: int = 24, w: int = 80) -> None:
        self.h = h
        self.w = w
        self.writes: list[tuple[int, int, str]] = []

    def getmaxyx(self) -> tuple[int, int]:
        return self.h, self.w

    def addnstr(self, y: int, x: int, text: str, n: int, attr: int = 0) -> None:
        self.writes.append((y, x, text[:n]))

    def addch(self, y: int, x: int, ch: int, attr: int = 0) -> None:
        return


BOX_GLYPHS = {name: ord("+") for name in ("ACS_ULCORNER", "ACS_URCORNER", "ACS_LLCORNER", "ACS_LRCORNER", "ACS_HLINE", "ACS_VLINE")}


class ScreenTitleTests(unittest.TestCase):
    def setUp(self) -> None:
        patcher = mock.patch.multiple(curses, create=True, **BOX_GLYPHS)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.theme = Theme(has_color=False)

    def _titles(self, win: RecordingWindow, row: int) -> list[str]:
        return [text for y, x, text in win.writes if y == row and x == 2]

    def test_box_titles_have_single_padding(self) -> None:
        store = _store()
        with tempfile.TemporaryDirectory() as td:
            logstore = LogStore(max_entries=8, log_dir=Path(td))
            win = RecordingWindow()
            draw_selection(win, self.theme, 3, 18, 80, initial_state(store), store, logstore)  # type: ignore[arg-type]
        self.assertIn(" TEMPLATES (2) ", self._titles(win, 3))

        session = FormSession.start(store.at(0))
        win = RecordingWindow()
        draw_editing(win, self.theme, 3, 18, 80, session)  # type: ignore[arg-type]
        self.assertIn(" FORM :: A ", self._titles(win, 3))

        win = RecordingWindow()
        draw_preview(win, self.theme, 3, 18, 80, session)  # type: ignore[arg-type]
        self.assertIn(" PREVIEW ", self._titles(win, 3))
        self.assertFalse(any(text.startswith("  ") and text.strip().isupper() for _, _, text in win.writes))


class ConsoleModeTests(unittest.TestCase):
    def test_plain_console_fills_and_sends(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            sender = FakeSender()
            logstore = LogStore(max_entries=64, log_dir=Path(td))
            controller = WizardController(_store(), sender, logstore)
            answers = ["2", "Ada", "s", "q"]
            with mock.patch("builtins.input", side_effect=answers), mock.patch("sys.stdout", new_callable=io.StringIO) as out:
                rc = run_plain_console(controller)
        self.assertEqual(rc, 0)
        self.assertEqual(len(sender.messages), 1)
        self.assertEqual(sender.messages[0].title, "B")
        self.assertEqual(sender.messages[0].fields, (EmbedField(name="Who", value="Ada"),))
        self.assertIn("Message sent successfully.", out.getvalue())

    def test_plain_console_edit_from_preview_updates_the_prompted_field(self) -> None:
        first_second = _template(
            "pair",
            ("first", FieldDefinition(kind="text", label="First")),
            ("second", FieldDefinition(kind="text", label="Second")),
        )
        store = TemplateStore([("pair", first_second)])
        with tempfile.TemporaryDirectory() as td:
            sender = FakeSender()
            controller = WizardController(store, sender, LogStore(max_entries=64, log_dir=Path(td)))
            answers = ["1", "one", "two", "e", "FIX", "", "s", "q"]
            with mock.patch("builtins.input", side_effect=answers), mock.patch("sys.stdout", new_callable=io.StringIO):
                self.assertEqual(run_plain_console(controller), 0)
        self.assertEqual(
            sender.messages[0].fields,
            (EmbedField(name="First", value="FIX"), EmbedField(name="Second", value="two")),
        )

    def test_plain_console_quits_on_eof(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            controller = WizardController(_store(), FakeSender(), LogStore(max_entries=16, log_dir=Path(td)))
            with mock.patch("builtins.input", side_effect=EOFError), mock.patch("sys.stdout", new_callable=io.StringIO):
                self.assertEqual(run_plain_console(controller), 0)
        self.assertFalse(controller.running)

    def test_push_applies_overrides(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            sender = FakeSender()
            logstore = LogStore(max_entries=16, log_dir=Path(td))
            config = AppConfig(webhook_url=sender.url, template="a", push=True, overrides={"notes": "n1"})
            with mock.patch("sys.stdout", new_callable=io.StringIO):
                rc = run_push(config, _store(), sender, logstore)  # type: ignore[arg-type]
        self.assertEqual(rc, 0)
        self.assertEqual(
            sender.messages[0].fields,
            (EmbedField(name="Summary", value="draft"), EmbedField(name="Notes", value="n1")),
        )

    def test_push_rejects_unknown_field(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            sender = FakeSender()
            logstore = LogStore(max_entries=16, log_dir=Path(td))
            config = AppConfig(webhook_url=sender.url, template="a", push=True, overrides={"bogus": "x"})
            with mock.patch("sys.stderr", new_callable=io.StringIO) as err:
                rc = run_push(config, _store(), sender, logstore)  # type: ignore[arg-type]
        self.assertEqual(rc, 1)
        self.assertEqual(sender.messages, [])
        self.assertIn("bogus", err.getvalue())


if __name__ == "__main__":
    unittest.main()
