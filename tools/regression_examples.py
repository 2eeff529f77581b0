#!/usr/bin/env python3

import argparse
import json
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from camdiscgen import (
    Settings,
    bbox_points,
    build_disc,
    load_settings,
    make_svg,
    outline_polygons,
    settings_meta,
    write_svg,
)

SVG_NS = "{http://www.w3.org/2000/svg}"

# Disc geometry may touch the rim; allow formatting noise.
RIM_TOLERANCE_MM = 1e-3


@dataclass
class Case:
    name: str
    settings: Settings
    source_file: Path


def _iter_cases(config_dir: Path) -> List[Case]:
    if not config_dir.exists():
        raise FileNotFoundError(f"Config dir not found: {config_dir}")

    cases: List[Case] = []
    for p in sorted(config_dir.glob("*.toml")):
        cases.append(Case(name=p.stem, settings=load_settings(str(p)), source_file=p))

    if not cases:
        raise FileNotFoundError(f"No *.toml found in: {config_dir}")

    return cases


def _validate_svg(svg: str, *, name: str) -> None:
    root = ET.fromstring(svg.encode("utf-8"))
    disc = [el for el in root.iter(f"{SVG_NS}path") if el.get("id") == "DISC"]
    if len(disc) != 1:
        raise ValueError(f"{name}: expected one DISC path, found {len(disc)}")
    if disc[0].get("fill-rule") != "evenodd":
        raise ValueError(f"{name}: DISC path is not evenodd filled")
    if not disc[0].get("d", "").rstrip().endswith("Z"):
        raise ValueError(f"{name}: DISC path is not closed")


def _check_inside_disc(case: Case) -> None:
    geometry = build_disc(case.settings)
    d = float(case.settings.diameter_mm)
    for poly in outline_polygons(geometry.outline()):
        x0, y0, x1, y1 = bbox_points(poly)
        if min(x0, y0) < -RIM_TOLERANCE_MM or max(x1, y1) > d + RIM_TOLERANCE_MM:
            raise ValueError(f"{case.name}: outline leaves the {d:g}mm document square")


def _build_summary_md(results: List[Tuple[Case, str]]) -> str:
    lines = ["# camdiscgen regression\n"]
    for case, status in results:
        lines.append(f"## {case.name}: {status}\n")
        lines.append("```json")
        lines.append(json.dumps(settings_meta(case.settings), indent=2, sort_keys=True))
        lines.append("```\n")
    return "\n".join(lines) + "\n"


def main(argv: List[str]) -> int:
    ap = argparse.ArgumentParser(description="Render every example disc configuration and validate the SVGs.")
    ap.add_argument(
        "--config-dir",
        default="examples",
        help="Directory containing *.toml disc configurations (default: %(default)s)",
    )
    ap.add_argument(
        "--out-dir",
        default="artifacts/regression",
        help="Output directory for rendered SVGs and summary.md (default: %(default)s)",
    )
    args = ap.parse_args(argv)

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    cases = _iter_cases(Path(args.config_dir))

    results: List[Tuple[Case, str]] = []
    failures: List[Tuple[str, str]] = []
    for c in cases:
        try:
            svg = make_svg(build_disc(c.settings), c.settings)
            _validate_svg(svg, name=c.name)
            _check_inside_disc(c)
            out_path = out_dir / f"{c.name}.svg"
            write_svg(svg, str(out_path))
            results.append((c, "OK"))
            print(f"OK  {c.name} -> {out_path}")
        except (ValueError, ET.ParseError) as e:
            failures.append((c.name, str(e)))
            results.append((c, "FAIL"))
            print(f"FAIL {c.name}: {e}", file=sys.stderr)

    (out_dir / "summary.md").write_text(_build_summary_md(results), encoding="utf-8")

    if failures:
        print("\nFailures:", file=sys.stderr)
        for name, msg in failures:
            print(f"- {name}: {msg}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
