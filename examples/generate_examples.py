#!/usr/bin/env python3

import os
import sys

# Allow running this script directly (sys.path[0] is examples/).
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

import camdiscgen as gen


def generate(out_dir: str):
    os.makedirs(out_dir, exist_ok=True)

    examples = [
        (
            "flat_eight.svg",
            gen.Settings(
                strokes=tuple((f"S{i}", "M 0,0 L 0,30") for i in range(8)),
                diameter_mm=80,
                center_circle_radius_mm=5.0,
                vertices_per_millimeter=2,
            ),
        ),
        (
            "gapped_teeth.svg",
            gen.Settings(
                strokes=(
                    ("low", "M 0,0 L 6,10 L 6,20 L 0,30"),
                    ("mid", "M 0,5 L 12,15 L 0,25"),
                    ("high", "M 0,0 L 18,12 L 18,18 L 0,30"),
                    ("rest", "M 0,0 L 0,30.0"),
                    ("late", "M 0,10 L 8,20 L 0,30"),
                    ("early", "M 0,0 L 8,10 L 0,20"),
                ),
                diameter_mm=100,
                center_circle_radius_mm=6.0,
                outer_circles_radius_mm=2.5,
                outer_circles_margin_mm=30.0,
                vertices_per_millimeter=3,
                generate_tooth=True,
                generate_gaps=True,
                display_stroke_names=True,
            ),
        ),
        (
            "kerf_compensated.svg",
            gen.Settings(
                strokes=tuple((f"S{i}", "M 0,0 L 10,10 L 10,20 L 0,30") for i in range(6)),
                diameter_mm=100,
                center_circle_radius_mm=8.0,
                vertices_per_millimeter=2,
                kerf_mm=0.2,
            ),
        ),
    ]

    for filename, settings in examples:
        svg = gen.generate_svg(settings)
        with open(os.path.join(out_dir, filename), "w", encoding="utf-8") as f:
            f.write(svg)

    # Checked-in TOML configurations render next to themselves.
    here = os.path.dirname(os.path.abspath(__file__))
    for name in sorted(os.listdir(here)):
        if name.endswith(".toml"):
            config = os.path.join(here, name)
            settings = gen.load_settings(config)
            gen.write_svg(gen.generate_svg(settings), os.path.join(out_dir, name[:-5] + ".svg"))


if __name__ == "__main__":
    generate(os.path.join(os.path.dirname(__file__)))
