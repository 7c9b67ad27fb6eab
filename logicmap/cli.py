from __future__ import annotations

import argparse
import json
import sys
import time
from dataclasses import asdict

from logicmap.compiler import compile_source
from logicmap.config import SETTINGS
from logicmap.languages import LANGUAGES, resolve_language
from logicmap.log import configure_logging, log
from logicmap.renderer import MermaidCliRenderer, RenderError
from logicmap.sanitize import LabelMode
from logicmap.tracer import build_default_tracer


def _read_source(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def _parse_inputs(pairs) -> dict:
    inputs = {}
    for pair in pairs or []:
        name, sep, value = pair.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Expected NAME=VALUE, got {pair!r}")
        inputs[name.strip()] = value
    return inputs


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Generate control-flow diagrams (Mermaid) from source code")
    parser.add_argument("path", help="Source file, or '-' to read from stdin")
    parser.add_argument(
        "--language",
        "-l",
        required=True,
        help=f"Source language, case-insensitive (e.g. {', '.join(LANGUAGES)})",
    )
    parser.add_argument("--format", choices=("mermaid", "json"), default="mermaid", help="Output format (default: mermaid)")
    parser.add_argument("--render", metavar="OUT", help="Also render the diagram through the Mermaid CLI into OUT (.svg/.png)")
    parser.add_argument("--mermaid-cli", default=None, help=f"Mermaid CLI executable (default: {SETTINGS.mermaid_cli})")
    parser.add_argument("--render-timeout", type=float, default=None, help="Seconds before a render is abandoned")
    parser.add_argument("--max-label", type=int, default=None, help="Label length limit for the language's label mode")
    parser.add_argument("--trace", metavar="OUT", help="Ask the LLM tracer for execution steps and write them as JSON to OUT")
    parser.add_argument("--input", action="append", metavar="NAME=VALUE", help="User input value for the tracer (repeatable)")
    parser.add_argument("--ollama-model", default=SETTINGS.ollama_model, help=f"Ollama model name (default: {SETTINGS.ollama_model})")
    parser.add_argument("--verbose", "-v", action="store_true", help="Progress output on stderr")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)
    lang = resolve_language(args.language)
    if lang is None:
        log(f"[WARN] Unsupported language: {args.language}", "error")
        return 1

    label_limit = "strict_max_label" if lang.label_mode is LabelMode.STRICT else "lenient_max_label"
    settings = SETTINGS.with_overrides(
        mermaid_cli=args.mermaid_cli,
        render_timeout_seconds=args.render_timeout,
        **{label_limit: args.max_label},
    )

    try:
        code = _read_source(args.path)
        inputs = _parse_inputs(args.input)
    except (OSError, ValueError) as e:
        log(f"[WARN] {e}", "error")
        return 1

    t0 = time.perf_counter()
    graph, diagram = compile_source(code, args.language, settings)
    log(f"[TIME] Diagram generated in {time.perf_counter() - t0:.3f}s", "info")
    if not diagram:
        log("[WARN] Nothing to draw", "error")
        return 1

    if args.format == "json":
        print(json.dumps(graph.to_dict(), indent=2))
    else:
        sys.stdout.write(diagram)

    if args.render:
        try:
            out = MermaidCliRenderer(settings.mermaid_cli, settings.render_timeout_seconds).render_to_file(diagram, args.render)
        except RenderError as e:
            log(f"[WARN] {e}", "error")
            return 1
        log(f"[INFO] Rendered {out}", "info")

    if args.trace:
        t0 = time.perf_counter()
        steps = build_default_tracer(args.ollama_model).trace(code, args.language, inputs)
        log(f"[TIME] Traced {len(steps)} steps in {time.perf_counter() - t0:.3f}s", "info")
        with open(args.trace, "w", encoding="utf-8") as f:
            json.dump([asdict(s) for s in steps], f, indent=2)
    return 0


if __name__ == "__main__":
    sys.exit(main())
