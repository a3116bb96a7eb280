import logging
import sys
from pathlib import Path

from scriptcomplete.completion_service import CompletionService
from scriptcomplete.settings_store import JsonSettingsStore
from scriptcomplete.ui.editor_bridge import TextEditorBridge

SETTINGS_ARG = "--settings"
USAGE = "usage: main.py [--settings settings.json] SCRIPT [CARET_OFFSET]"
_LOG_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def _split_args(argv: list[str]) -> tuple[list[str], str | None]:
    positional: list[str] = []
    settings_path = None
    it = iter(argv)
    for arg in it:
        if arg == SETTINGS_ARG:
            settings_path = next(it, None)
            continue
        positional.append(arg)
    return positional, settings_path


def _caret_offset(raw: str | None, text: str) -> int:
    if raw is None:
        return len(text)
    try:
        return int(raw)
    except ValueError:
        return len(text)


def main(argv: list[str]) -> int:
    positional, settings_path = _split_args(argv)
    if not positional:
        print(USAGE, file=sys.stderr)
        return 2

    store = JsonSettingsStore(settings_path)
    store.load()
    settings = store.completion_settings()
    logging.basicConfig(
        level=_LOG_LEVELS.get(settings["debug"], logging.DEBUG),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    script = Path(positional[0])
    try:
        text = script.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"Cannot read {script}: {exc}", file=sys.stderr)
        return 1

    service = CompletionService(settings)
    try:
        # Outside the editor there is no keystroke budget; let the index finish.
        service.module_cache.wait(timeout=30)
        if service.module_cache.classes is not None:
            service.module_cache.classes.wait(timeout=30)
        caret = _caret_offset(positional[1] if len(positional) > 1 else None, text)
        result = service.complete(TextEditorBridge(text, caret))
    finally:
        service.shutdown()

    for candidate in result.candidates:
        extra = f"  [{candidate.import_statement}]" if candidate.import_statement else ""
        print(f"{candidate.display_text}\t{candidate.replacement_text!r}{extra}")
    return 0


def run() -> None:
    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    run()
