"""Template validation script.

Scans every template in the store, reports its placeholders and any
legacy spellings, and test-renders it with sample values. With --fix,
writes repaired copies (canonical tag names) to a separate directory;
the template directory itself is never modified.

Usage:
    python scripts/validate_templates.py
    python scripts/validate_templates.py --fix --out ./repaired
    python scripts/validate_templates.py CommonCarryDeclaration.docx
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from docfill.core.config import get_settings
from docfill.core.logging_config import get_logger, setup_logging
from docfill.interfaces.template import TemplateError
from docfill.strategies.template_engine import (
    DocxTemplateBinder,
    FileSystemTemplateStore,
    normalize_tag,
    repair_template,
    scan_tags,
)
from docfill.strategies.template_engine.normalizer import is_legacy_tag

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate document templates")
    parser.add_argument("templates", nargs="*", help="Template filenames (default: all)")
    parser.add_argument("--dir", type=Path, default=None, help="Template directory")
    parser.add_argument("--fix", action="store_true", help="Write repaired copies")
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Directory for repaired copies (default: <output_dir>/repaired)",
    )
    return parser.parse_args(argv)


async def check_template(
    store: FileSystemTemplateStore,
    binder: DocxTemplateBinder,
    name: str,
    fix_dir: Path | None,
) -> bool:
    """Validate one template; returns True when it scans and renders cleanly."""
    try:
        content = store.load(name)
        tags = scan_tags(content)
    except TemplateError as e:
        print(f"✗ {name}: {e.detail}")
        return False

    legacy = sorted(t for t in tags if is_legacy_tag(t))
    print(f"• {name}: {len(tags)} placeholder(s)")
    for tag in sorted(tags):
        canonical = normalize_tag(tag)
        suffix = f"  (legacy, use {{{{{canonical}}}}})" if tag != canonical else ""
        print(f"    {{{{{tag}}}}}{suffix}")

    sample = {normalize_tag(t): "Test value" for t in tags}
    render = await binder.bind(content, tags, sample)
    if render.ok and render.attempts == 1:
        print("  ✓ renders with sample data")
    elif render.ok:
        print(f"  ! renders only after retry; unresolved: {list(render.missing)}")
    else:
        print(f"  ✗ render failed: {render.error.detail}")

    if fix_dir is not None and (legacy or not render.ok or render.attempts > 1):
        try:
            report = repair_template(content)
        except TemplateError as e:
            print(f"  ✗ repair failed: {e.detail}")
            return False
        if report.changed:
            stem, suffix = Path(name).stem, Path(name).suffix
            target = fix_dir / f"{stem}_fixed{suffix}"
            target.write_bytes(report.content)
            for change in report.changes:
                print(f"    {change}")
            print(f"  → repaired copy written to {target}")
            logger.info(f"Wrote repaired template {target}")

    return render.ok and not legacy


async def main(argv: list[str] | None = None) -> int:
    """Validate templates and return the process exit code."""
    args = parse_args(argv)
    settings = get_settings()
    template_dir = args.dir or settings.template_dir
    store = FileSystemTemplateStore(template_dir)
    binder = DocxTemplateBinder()

    fix_dir = None
    if args.fix:
        fix_dir = (args.out or settings.output_dir / "repaired").resolve()
        if fix_dir == Path(template_dir).resolve():
            print("Refusing to write repaired copies into the template directory")
            return 2
        fix_dir.mkdir(parents=True, exist_ok=True)

    names = args.templates or store.list_templates()
    if not names:
        print(f"No templates found in {template_dir}")
        return 1

    print(f"Validating {len(names)} template(s) in {template_dir}\n")
    results = [await check_template(store, binder, name, fix_dir) for name in names]

    failed = results.count(False)
    print(f"\n{len(results) - failed} passed, {failed} need attention")
    return 1 if failed else 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(main()))
