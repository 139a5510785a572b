"""CLI entry point for paperlane."""

import argparse
import logging
from pathlib import Path

from paperlane.config import load_config
from paperlane.db import StateDB
from paperlane.diagrams.flow import DiagramEngine
from paperlane.diagrams.registry import FlowRegistry
from paperlane.page import Page
from paperlane.render.markup import MarkupRenderer
from paperlane.runtime import Platform
from paperlane.state import LocalState, ThemeMotionStore


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Paperlane whitepaper renderer")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--db", type=Path, help="Override the state database path")
    sub = parser.add_subparsers(dest="command")

    # build command
    build_parser = sub.add_parser("build", help="Render a markdown whitepaper to a single HTML page")
    build_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    build_parser.add_argument("document", type=Path, help="Markdown source")
    build_parser.add_argument("-o", "--output", type=Path, help="Output HTML path")
    build_parser.add_argument("--title", help="Page title (defaults to config)")
    build_parser.add_argument("--config", type=Path, default=argparse.SUPPRESS, help="Path to config.yaml")

    # sections command
    sections_parser = sub.add_parser("sections", help="List sections and their collapsed state")
    sections_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sections_parser.add_argument("document", type=Path, help="Markdown source")

    # diagrams command
    diagrams_parser = sub.add_parser("diagrams", help="Show which code blocks become diagrams")
    diagrams_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    diagrams_parser.add_argument("document", type=Path, help="Markdown source")

    # state command
    state_parser = sub.add_parser("state", help="Inspect or edit persisted UI state")
    state_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    state_sub = state_parser.add_subparsers(dest="state_command")
    state_sub.add_parser("show", help="Print persisted state")
    set_parser = state_sub.add_parser("set", help="Set theme (light|dark) or motion (on|off)")
    set_parser.add_argument("key", choices=["theme", "motion"])
    set_parser.add_argument("value")
    collapse_parser = state_sub.add_parser("collapse", help="Mark a section collapsed")
    collapse_parser.add_argument("section_id")
    expand_parser = state_sub.add_parser("expand", help="Mark a section expanded")
    expand_parser.add_argument("section_id")
    state_sub.add_parser("reset", help="Clear all persisted state")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    db = StateDB(config, db_path=args.db)
    db.init_db()

    try:
        if args.command == "build":
            from paperlane.output.html_page import write_page

            page = Page(config, Platform(storage=db)).boot(args.document.read_text())
            output = write_page(page, args.output or config.resolved_output_dir / f"{args.document.stem}.html", args.title)
            print(f"Output: {output}")
            print(
                f"  {len(page.sections.sections)} sections, "
                f"{len(page.diagrams.diagrams)} diagrams, {len(page.widgets.widgets)} widgets"
            )

        elif args.command == "sections":
            page = Page(config, Platform(storage=db)).boot(args.document.read_text())
            for section in page.sections.sections.values():
                mark = "[+]" if section.collapsed else "[-]"
                print(f"  {mark} {section.id}")

        elif args.command == "diagrams":
            root = MarkupRenderer(config.render).render(args.document.read_text())
            engine = DiagramEngine(FlowRegistry.load(), store=None, config=config.layout)
            for index, lang, spec_id in engine.survey(root):
                target = spec_id or "(left as text)"
                print(f"  block {index} [{lang or 'plain'}] -> {target}")

        elif args.command == "state":
            local = LocalState(db, config.storage)
            if args.state_command == "set":
                store = ThemeMotionStore(local)
                if args.key == "theme":
                    try:
                        store.set_theme(args.value)
                    except ValueError:
                        parser.error(f"theme must be 'light' or 'dark', got {args.value!r}")
                else:
                    if args.value not in ("on", "off"):
                        parser.error(f"motion must be 'on' or 'off', got {args.value!r}")
                    store.set_motion(args.value == "on")
            elif args.state_command in ("collapse", "expand"):
                ids = local.read_collapsed()
                if args.state_command == "collapse":
                    ids.add(args.section_id)
                else:
                    ids.discard(args.section_id)
                local.write_collapsed(ids)
            elif args.state_command == "reset":
                removed = db.clear()
                print(f"Cleared {removed} keys")
                return

            state = local.load()
            print(f"  theme: {state.theme.value}")
            print(f"  motion: {'on' if state.motion else 'off'}")
            collapsed = ", ".join(sorted(state.collapsed_section_ids)) or "(none)"
            print(f"  collapsed: {collapsed}")

        else:
            parser.print_help()
    finally:
        db.close()


if __name__ == "__main__":
    main()
