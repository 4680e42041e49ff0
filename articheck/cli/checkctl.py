"""
checkctl — CLI for the articheck verification pipeline.

Commands:
    segment   Show how a Markdown document is split into sections
    verify    Verify every section and write the verified document
    export    Re-export a verified run (inline or with a sources list)
    stats     Show edit and citation statistics of a verified run
    template  Inspect (and optionally fill) an instruction template file

Author: articheck maintainers | 2026-10-19
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

import logging

logger = logging.getLogger(__name__)

# ANSI color helpers (auto-disabled for non-TTY)
_USE_COLOR = sys.stdout.isatty()


def _c(code: str, text: str) -> str:
    if not _USE_COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def _bold(text: str) -> str:
    return _c("1", text)


def _green(text: str) -> str:
    return _c("32", text)


def _yellow(text: str) -> str:
    return _c("33", text)


def _red(text: str) -> str:
    return _c("31", text)


def _cyan(text: str) -> str:
    return _c("36", text)


def _dim(text: str) -> str:
    return _c("2", text)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _resolve_workspace(doc_path: Path, workspace: Optional[Path]) -> Path:
    """Resolve the output directory for a document."""
    if workspace:
        return workspace

    # Default: .verify/<doc_stem>_<hash>/ next to the document
    from articheck.models import content_hash
    text = doc_path.read_text(encoding="utf-8")
    h = content_hash(text).split(":")[-1][:12]
    return doc_path.parent / ".verify" / f"{doc_path.stem}_{h}"


def _read_doc(path_str: str) -> Optional[Path]:
    path = Path(path_str).resolve()
    if not path.exists():
        print(_red(f"Error: File not found: {path}"))
        return None
    return path


def _load_run(path_str: str):
    """Load sections and title from a run.json written by `verify`."""
    from articheck.models import Section

    path = _read_doc(path_str)
    if path is None:
        return None, None
    data = json.loads(path.read_text(encoding="utf-8"))
    sections = [Section.from_dict(d) for d in data.get("sections", [])]
    return sections, data.get("title")


def _print_sections(sections) -> None:
    for s in sections:
        heading = s.heading or _dim("(untitled)")
        marker = "#" * s.level if s.heading else "  "
        print(f"  {_cyan(f'[{s.index}]')} {marker} {heading}  {_dim(f'{s.word_count} words')}")


def _parse_assignments(items: Optional[List[str]]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for item in items or []:
        if "=" not in item:
            raise argparse.ArgumentTypeError(f"Expected key=value, got {item!r}")
        key, value = item.split("=", 1)
        values[key.strip()] = value
    return values


# ---------------------------------------------------------------------------
# Command: segment
# ---------------------------------------------------------------------------

def cmd_segment(args: argparse.Namespace) -> int:
    """Split a document and show the partition."""
    from articheck.config import load_config
    from articheck.segmenter import divide, validate

    doc_path = _read_doc(args.doc)
    if doc_path is None:
        return 1

    config = load_config(Path(args.config) if args.config else None)
    result = divide(doc_path.read_text(encoding="utf-8"), config.segment)
    report = validate(result.sections, config.segment)

    if args.json:
        payload = result.to_dict()
        payload["validation"] = report.to_dict()
        print(json.dumps(payload, indent=2))
        return 0

    print(_bold(f"{doc_path.name}: {result.total_sections} sections via {result.strategy}"
                f"{' (merged)' if result.merged else ''}"))
    _print_sections(result.sections)
    if report.warnings:
        print()
        for w in report.warnings:
            print(f"  {_yellow('!')} {w}")
    else:
        print(_green("  Shape OK"))
    return 0


# ---------------------------------------------------------------------------
# Command: verify
# ---------------------------------------------------------------------------

def cmd_verify(args: argparse.Namespace) -> int:
    """Run the full verification pipeline."""
    from articheck.checker import SectionVerifier
    from articheck.config import DispatchConfig, default_endpoint, load_config
    from articheck.llm_backend import get_backend
    from articheck.pipeline import VerificationError, verify_document
    from articheck.prompts import build_instruction

    doc_path = _read_doc(args.doc)
    if doc_path is None:
        return 1

    config = load_config(Path(args.config) if args.config else None)
    if args.backend:
        if args.backend != config.llm.backend and not args.endpoint:
            config.llm.endpoint = default_endpoint(args.backend)
        config.llm.backend = args.backend
    if args.model:
        config.llm.model = args.model
    if args.endpoint:
        config.llm.endpoint = args.endpoint
    if args.concurrency:
        config.dispatch = DispatchConfig(max_concurrency=args.concurrency)
    if args.preset:
        config.preset = args.preset
    if args.guidelines:
        config.guidelines = args.guidelines
    if args.allowed_domain:
        config.allowed_domains = list(args.allowed_domain)
    if args.instruction_file:
        config.custom_prompt = Path(args.instruction_file).read_text(encoding="utf-8")

    workspace = _resolve_workspace(doc_path, Path(args.workspace) if args.workspace else None)
    workspace.mkdir(parents=True, exist_ok=True)

    print(_bold(f"Fact-check: {doc_path.name}"))
    print(f"Workspace: {_dim(str(workspace))}")
    print(f"Model: {_dim(config.llm.backend + ':' + config.llm.model)}")
    print()

    instruction = build_instruction(
        preset=config.preset,
        custom_prompt=config.custom_prompt,
        guidelines=config.guidelines,
        allowed_domains=config.allowed_domains,
    )
    verifier = SectionVerifier(get_backend(config.llm), instruction, config.llm)

    try:
        run = verify_document(
            doc_path.read_text(encoding="utf-8"),
            verifier,
            config=config,
            on_failure="abort" if args.abort_on_failure else None,
            title=args.title,
        )
    except VerificationError as e:
        print(_red(f"Aborted: {e}"))
        for f in e.failures:
            print(f"    {_dim(f.section_id)} {f.error}")
        return 2

    _print_sections(run.sections)
    for w in run.validation.warnings:
        print(f"  {_yellow('!')} {w}")
    for f in run.failures:
        print(f"  {_red('x')} {f.section_id}: {f.error} {_dim('(kept original text)')}")

    stem = doc_path.stem
    inline_path = workspace / f"{stem}.verified.md"
    sources_path = workspace / f"{stem}.sources.md"
    run_path = workspace / "run.json"
    inline_path.write_text(run.inline + "\n", encoding="utf-8")
    sources_path.write_text(run.with_sources, encoding="utf-8")
    run_path.write_text(json.dumps(run.to_dict(), indent=2), encoding="utf-8")

    stats = run.stats
    print()
    print(f"Changes: {stats['changes']['total']}  Citations: {stats['citations']} "
          f"({stats['unique_sources']} unique)")
    usage = run.backend.get("usage") or {}
    if usage:
        print(_dim("Tokens: " + ", ".join(f"{k}={v}" for k, v in sorted(usage.items()))))
    print(_green(f"Verified: {inline_path}"))
    print(_green(f"Sources:  {sources_path}"))
    print(_dim(f"Run:      {run_path}"))
    return 0 if not run.failures else 3


# ---------------------------------------------------------------------------
# Command: export / stats
# ---------------------------------------------------------------------------

def cmd_export(args: argparse.Namespace) -> int:
    """Re-export a verified run."""
    from articheck.reassembler import export_inline, export_with_sources

    sections, saved_title = _load_run(args.run)
    if sections is None:
        return 1
    title = args.title or saved_title

    if args.sources:
        text = export_with_sources(sections, title=title)
    else:
        text = export_inline(sections, title=title, include_metadata=args.metadata)

    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(_green(f"Written: {args.output}"))
    else:
        print(text)
    return 0


def cmd_stats(args: argparse.Namespace) -> int:
    """Show statistics of a verified run."""
    from articheck.reassembler import document_stats

    sections, _ = _load_run(args.run)
    if sections is None:
        return 1
    stats = document_stats(sections)

    if args.json:
        print(json.dumps(stats, indent=2))
        return 0

    print(_bold(f"{stats['verified_sections']}/{stats['sections']} sections verified"))
    print(f"Changes: {stats['changes']['total']}")
    for kind, n in stats["changes"]["by_kind"].items():
        print(f"  {kind:<20} {n}")
    print(f"Citations: {stats['citations']} ({stats['unique_sources']} unique sources)")
    if stats["mean_confidence"] is not None:
        print(f"Mean confidence: {stats['mean_confidence']:.2f}")
    return 0


# ---------------------------------------------------------------------------
# Command: template
# ---------------------------------------------------------------------------

def cmd_template(args: argparse.Namespace) -> int:
    """Inspect an instruction template file."""
    from articheck.templates import fill_variables, parse_template, validate_variables

    path = _read_doc(args.file)
    if path is None:
        return 1
    tpl = parse_template(path.read_text(encoding="utf-8"))

    print(_bold(tpl.name) + f"  {_dim('[' + tpl.shape.kind + ']')}")
    if tpl.description:
        print(_dim(tpl.description))
    names = ", ".join(v.name for v in tpl.variables) or _dim("none")
    print(f"Variables: {names}")

    values = _parse_assignments(args.set)
    if values or args.fill:
        ok, missing = validate_variables(tpl.variables, values)
        if not ok:
            print(_yellow(f"Missing values: {', '.join(missing)}"))
        print()
        print(fill_variables(tpl.prompt_text, values))
    else:
        print()
        print(tpl.prompt_text)
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the checkctl argument parser."""
    from articheck.prompts import PRESETS

    parser = argparse.ArgumentParser(
        prog="checkctl",
        description="Section-wise fact verification for Markdown articles",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # --- segment ---
    p_seg = sub.add_parser("segment", help="Show the section split of a document")
    p_seg.add_argument("doc", help="Path to Markdown document")
    p_seg.add_argument("--config", help="Path to articheck.yaml")
    p_seg.add_argument("--json", action="store_true", help="Print JSON")
    p_seg.set_defaults(func=cmd_segment)

    # --- verify ---
    p_ver = sub.add_parser("verify", help="Verify a document section by section")
    p_ver.add_argument("doc", help="Path to Markdown document")
    p_ver.add_argument("-w", "--workspace", help="Output directory (default: auto)")
    p_ver.add_argument("--config", help="Path to articheck.yaml")
    p_ver.add_argument("--backend", choices=["openrouter", "ollama"], help="LLM backend")
    p_ver.add_argument("--model", help="Verification model")
    p_ver.add_argument("--endpoint", help="Backend endpoint URL")
    p_ver.add_argument("--preset", choices=list(PRESETS), help="Instruction preset")
    p_ver.add_argument("--instruction-file", help="Custom instruction (replaces the preset)")
    p_ver.add_argument("--guidelines", help="Additional compliance guidelines")
    p_ver.add_argument("--allowed-domain", action="append", help="Preferred source domain (repeatable)")
    p_ver.add_argument("--concurrency", type=int, help="Max concurrent verification calls")
    p_ver.add_argument("--abort-on-failure", action="store_true",
                       help="Fail the whole document if any section fails")
    p_ver.add_argument("--title", help="Document title for exports")
    p_ver.set_defaults(func=cmd_verify)

    # --- export ---
    p_exp = sub.add_parser("export", help="Export a verified run")
    p_exp.add_argument("run", help="Path to run.json")
    p_exp.add_argument("--sources", action="store_true", help="Append a sources list")
    p_exp.add_argument("--metadata", action="store_true", help="Add a verification header")
    p_exp.add_argument("--title", help="Document title")
    p_exp.add_argument("-o", "--output", help="Output file (default: stdout)")
    p_exp.set_defaults(func=cmd_export)

    # --- stats ---
    p_stats = sub.add_parser("stats", help="Show statistics of a verified run")
    p_stats.add_argument("run", help="Path to run.json")
    p_stats.add_argument("--json", action="store_true", help="Print JSON")
    p_stats.set_defaults(func=cmd_stats)

    # --- template ---
    p_tpl = sub.add_parser("template", help="Inspect an instruction template file")
    p_tpl.add_argument("file", help="Template file (JSON or text)")
    p_tpl.add_argument("--set", action="append", metavar="KEY=VALUE", help="Variable value (repeatable)")
    p_tpl.add_argument("--fill", action="store_true", help="Print the filled prompt")
    p_tpl.set_defaults(func=cmd_template)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for checkctl."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    if not args.command:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except Exception as e:
        print(_red(f"ERROR: {e}"))
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
