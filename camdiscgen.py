#!/usr/bin/env python3
"""camdiscgen.py

SVG generator for rotary cam discs (music-box style): every stroke of the
configuration becomes one angular sector of the disc whose edge follows a
small height profile.

Profile mini-language (one string per stroke):
    M 0,0 L 12,10 L 0,30
- `M` / `L` command letters followed by `value,position` pairs.
- position runs 0..30 across the sector width, value 0..30 is the height.
- Tokens without a comma are passed through as literal path commands.
- Every sector after the first continues the same compound path (`M` -> `L`).

Notes:
- One filled path (evenodd) holds the disc, the center hole and the four
  alignment circles, so nested sub-paths become holes.
- SVG layers:
  DISC: #ddd fill, evenodd
  GAPS: #999 stroke (hill markers where a profile does not span 0..30)
  TEETH: #000 stroke (indexing notches)
  LABELS: stroke names
- Optional kerf compensation of the disc outline via pyclipper (kerf_mm > 0).
"""

from __future__ import annotations

import argparse
import json
import math
import textwrap
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union
from xml.sax.saxutils import escape

import pyclipper
import toml

__version__ = "0.1"

Point = Tuple[float, float]

# Coordinate domain of the profile language (value and position).
MAX_WIDTH = 30.0

# The first sector starts slightly past 0 degrees.
ANGLE_OFFSET = math.pi / 180.0 / 180.0

# Empirical sector sizing fit (not exact inscribed-rectangle geometry).
SIZING_LINEAR = 4.0 / 3.0
SIZING_QUADRATIC = 13.0 / 9.0

# Tooth corners, as fractions of the way from a sector corner to the center.
TOOTH_RIGHT_FRACTION = 0.2
TOOTH_LEFT_FRACTION = 0.235

# Gap detection compares the raw position text: "30.0" is NOT a full-width end.
LEFT_EDGE_POSITION_TEXT = "0"
RIGHT_EDGE_POSITION_TEXT = "30"

# mm -> document units (90 dpi user units).
MM_TO_DOCUMENT_UNITS = 3.543307

MOVE_TO = "M"
LINE_TO = "L"
CLOSE = "Z"


def fmt(n: float) -> str:
    s = f"{n:.3f}".rstrip("0").rstrip(".")
    return "0" if s == "-0" else s


def lerp(p: Point, q: Point, t: float) -> Point:
    return ((1.0 - t) * p[0] + t * q[0], (1.0 - t) * p[1] + t * q[1])


def midpoint(p: Point, q: Point) -> Point:
    return lerp(p, q, 0.5)


def bbox_points(points: List[Point]) -> Tuple[float, float, float, float]:
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return (min(xs), min(ys), max(xs), max(ys))


def polygon_area(points: List[Point]) -> float:
    a = 0.0
    for (x0, y0), (x1, y1) in zip(points, points[1:] + points[:1]):
        a += x0 * y1 - x1 * y0
    return a / 2.0


def circle_points(
    radius: float,
    vertices_per_millimeter: int,
    center_x: float,
    center_y: float,
) -> Tuple[List[float], List[float]]:
    """Tessellate a circle, starting at 12 o'clock and running clockwise (y down).

    Returns (xs, ys) of equal length.
    """
    steps = int(round(vertices_per_millimeter * 2 * math.pi * radius))
    if steps < 3:
        raise ValueError(
            f"circle of radius {radius} at {vertices_per_millimeter} vertices/mm "
            f"needs at least 3 vertices, got {steps}"
        )
    xs: List[float] = []
    ys: List[float] = []
    for i in range(steps):
        a = 2 * math.pi * i / steps - math.pi / 2
        xs.append(center_x + radius * math.cos(a))
        ys.append(center_y + radius * math.sin(a))
    return xs, ys


def circle_polygon(radius: float, vertices_per_millimeter: int, center: Point) -> List[Point]:
    xs, ys = circle_points(radius, vertices_per_millimeter, center[0], center[1])
    return list(zip(xs, ys))


def rotate_around_center(point: Point, angle: float, radius: float) -> Point:
    """Rotate `point` by `angle` (radians) about the disc center (radius, radius)."""
    dx = point[0] - radius
    dy = point[1] - radius
    c = math.cos(angle)
    s = math.sin(angle)
    return (c * dx - s * dy + radius, s * dx + c * dy + radius)


def sector_rectangle(radius: float, n: int) -> Tuple[float, float]:
    """Half-width `p` and baseline distance `q` of the rectangle for one of `n` sectors.

    The corners (radius +- p, radius - q - 2p/3) land on the disc circle.
    """
    if n < 1:
        raise ValueError("sector count must be >= 1")
    a = 2 * math.pi / n / 2
    t = math.tan(a)
    d = math.sqrt(1.0 + SIZING_LINEAR * t + SIZING_QUADRATIC * t ** 2)
    return radius * t / d, radius / d


def sector_angles(n: int) -> List[float]:
    """Accumulated sector angles: n start angles plus the angle reached after the last sector."""
    if n < 1:
        raise ValueError("sector count must be >= 1")
    step = 2 * math.pi / n
    angle = ANGLE_OFFSET
    angles = [angle]
    for _ in range(n):
        angle += step
        angles.append(angle)
    return angles


@dataclass(frozen=True)
class ProfileCommand:
    kind: str  # MOVE_TO | LINE_TO
    value: float
    position: float
    position_text: str


@dataclass(frozen=True)
class ProfileLiteral:
    token: str


ProfileToken = Union[ProfileCommand, ProfileLiteral]


def _parse_pair(token: str) -> Tuple[float, float, str]:
    parts = token.split(",")
    if len(parts) != 2:
        raise ValueError(f"malformed profile token {token!r}: expected value,position")
    try:
        value = float(parts[0])
        position = float(parts[1])
    except ValueError:
        raise ValueError(f"malformed profile token {token!r}: not a number") from None
    for name, v in (("value", value), ("position", position)):
        if not 0.0 <= v <= MAX_WIDTH:
            raise ValueError(f"profile {name} in {token!r} is outside 0..{fmt(MAX_WIDTH)}")
    return value, position, parts[1]


def parse_profile(profile: str, *, continuation: bool = False) -> List[ProfileToken]:
    """Tokenize one stroke profile.

    Grammar: whitespace separated tokens; `M` and `L` set the command for the
    following `value,position` pairs (the first pair after `M` moves, later
    pairs draw lines). Any other comma-less token is kept as a literal.
    With `continuation`, `M` reads as `L` so the sector joins the compound path.
    """
    tokens: List[ProfileToken] = []
    kind = LINE_TO
    for raw in profile.split():
        if raw == MOVE_TO and not continuation:
            kind = MOVE_TO
            continue
        if raw in (MOVE_TO, LINE_TO):
            kind = LINE_TO
            continue
        if "," not in raw:
            tokens.append(ProfileLiteral(raw))
            continue
        value, position, position_text = _parse_pair(raw)
        tokens.append(ProfileCommand(kind, value, position, position_text))
        if kind == MOVE_TO:
            kind = LINE_TO
    return tokens


@dataclass(frozen=True)
class PathSegment:
    """MoveTo / LineTo with a point, Close, or a literal token passed through."""

    kind: str
    point: Optional[Point] = None


def polyline_segments(points: List[Point], close: bool = True) -> List[PathSegment]:
    if not points:
        return []
    segments = [PathSegment(MOVE_TO, points[0])]
    segments += [PathSegment(LINE_TO, p) for p in points[1:]]
    if close:
        segments.append(PathSegment(CLOSE))
    return segments


def segments_to_path(segments: Iterable[PathSegment]) -> str:
    d: List[str] = []
    for s in segments:
        if s.point is None:
            d.append(s.kind)
        else:
            d.append(f"{s.kind} {fmt(s.point[0])},{fmt(s.point[1])}")
    return " ".join(d)


def outline_polygons(segments: Iterable[PathSegment]) -> List[List[Point]]:
    polygons: List[List[Point]] = []
    current: List[Point] = []
    for s in segments:
        if s.kind == MOVE_TO:
            if len(current) >= 3:
                polygons.append(current)
            current = [s.point]
        elif s.kind == LINE_TO:
            current.append(s.point)
        elif s.kind == CLOSE:
            if len(current) >= 3:
                polygons.append(current)
            current = []
        else:
            raise ValueError(f"cannot polygonize outline with literal token {s.kind!r}")
    if len(current) >= 3:
        polygons.append(current)
    return polygons


def offset_polygons_pyclipper(polygons: List[List[Point]], delta: float) -> List[List[Point]]:
    """Even-odd union of `polygons`, then offset by `delta` (outer grows, holes shrink)."""
    scale = 1000.0
    paths = [
        [(int(round(x * scale)), int(round(y * scale))) for x, y in poly]
        for poly in polygons
        if len(poly) >= 3
    ]
    if not paths:
        return []
    pc = pyclipper.Pyclipper()
    pc.AddPaths(paths, pyclipper.PT_SUBJECT, True)
    merged = pc.Execute(pyclipper.CT_UNION, pyclipper.PFT_EVENODD, pyclipper.PFT_EVENODD)
    if not merged:
        return []
    co = pyclipper.PyclipperOffset()
    co.AddPaths(merged, pyclipper.JT_MITER, pyclipper.ET_CLOSEDPOLYGON)
    res = co.Execute(delta * scale)
    return [[(x / scale, y / scale) for x, y in path] for path in res]


def map_profile_point(value: float, position: float, p: float, q: float, radius: float) -> Point:
    """Profile (value, position) -> unrotated disc coordinates.

    position 0..30 spans radius-p .. radius+p; value 0 sits 2p/3 outside the
    baseline radius-q, value 30 sits 4p/3 inside it.
    """
    unit = 2.0 * p / MAX_WIDTH
    x = position * unit + radius - p
    y = value * unit + radius - q - 2.0 / 3.0 * p
    return (x, y)


def transform_profile(
    tokens: Sequence[ProfileToken],
    *,
    p: float,
    q: float,
    radius: float,
    angle: float,
) -> List[PathSegment]:
    segments: List[PathSegment] = []
    for tok in tokens:
        if isinstance(tok, ProfileLiteral):
            segments.append(PathSegment(tok.token))
            continue
        local = map_profile_point(tok.value, tok.position, p, q, radius)
        segments.append(PathSegment(tok.kind, rotate_around_center(local, angle, radius)))
    return segments


def _baseline_point(position: float, p: float, q: float, radius: float, angle: float) -> Point:
    percent = position / MAX_WIDTH
    return rotate_around_center((-p + percent * 2.0 * p + radius, radius - q), angle, radius)


def boundary_markers(
    tokens: Sequence[ProfileToken],
    *,
    p: float,
    q: float,
    radius: float,
    angle: float,
) -> List[PathSegment]:
    """Hill markers for a profile that starts after 0 or ends before 30."""
    commands = [t for t in tokens if isinstance(t, ProfileCommand)]
    if not commands:
        raise ValueError("profile has no value,position pairs")
    first, last = commands[0], commands[-1]

    center = (radius, radius)
    left = rotate_around_center((radius - p, radius - q), angle, radius)
    right = rotate_around_center((radius + p, radius - q), angle, radius)

    segments: List[PathSegment] = []
    if first.position_text != LEFT_EDGE_POSITION_TEXT:
        x = _baseline_point(first.position, p, q, radius, angle)
        start = midpoint(left, center)
        segments += polyline_segments([start, left, x, midpoint(x, center), start], close=False)
    if last.position_text != RIGHT_EDGE_POSITION_TEXT:
        x = _baseline_point(last.position, p, q, radius, angle)
        start = midpoint(x, center)
        segments += polyline_segments([start, x, right, midpoint(right, center), start], close=False)
    return segments


def tooth_marks(*, p: float, q: float, radius: float, angle: float) -> List[PathSegment]:
    center = (radius, radius)
    right_local = (radius + p, radius - q)
    left_local = (radius - p, radius - q)
    a = rotate_around_center(lerp(right_local, center, TOOTH_RIGHT_FRACTION), angle, radius)
    b = rotate_around_center(lerp(left_local, center, TOOTH_LEFT_FRACTION), angle, radius)
    corner = rotate_around_center(right_local, angle, radius)
    return polyline_segments([a, b, corner], close=True)


@dataclass(frozen=True)
class StrokeLabel:
    name: str
    x: float
    y: float
    rotation_deg: float


@dataclass(frozen=True)
class SectorGradient:
    index: int
    rotation_deg: float


@dataclass
class SectorGeometry:
    index: int
    angle: float
    outline: List[PathSegment]
    label: StrokeLabel
    gradient: SectorGradient
    gaps: List[PathSegment] = field(default_factory=list)
    tooth: List[PathSegment] = field(default_factory=list)


@dataclass
class DiscGeometry:
    radius: float
    p: float
    q: float
    sectors: List[SectorGeometry] = field(default_factory=list)
    holes: List[List[Point]] = field(default_factory=list)

    def outline(self) -> List[PathSegment]:
        """Compound disc path: all sectors, closed, then one closed sub-path per hole."""
        segments = [s for sector in self.sectors for s in sector.outline]
        segments.append(PathSegment(CLOSE))
        for hole in self.holes:
            segments += polyline_segments(hole, close=True)
        return segments

    def gaps(self) -> List[PathSegment]:
        return [s for sector in self.sectors for s in sector.gaps]

    def teeth(self) -> List[PathSegment]:
        return [s for sector in self.sectors for s in sector.tooth]


@dataclass(frozen=True)
class Settings:
    strokes: Tuple[Tuple[str, str], ...]
    diameter_mm: int
    center_circle_radius_mm: float = 0.0
    outer_circles_radius_mm: float = 0.0
    outer_circles_margin_mm: float = 0.0
    vertices_per_millimeter: int = 2
    generate_tooth: bool = False
    generate_gaps: bool = False
    display_stroke_names: bool = False
    kerf_mm: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        missing = [k for k in ("strokes", "diameter_mm") if k not in data]
        if missing:
            raise ValueError(f"missing settings: {', '.join(missing)}")
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        strokes = kwargs["strokes"]
        if not isinstance(strokes, (list, tuple)):
            raise ValueError("strokes must be an array of [name, profile] pairs")
        kwargs["strokes"] = tuple(_coerce_stroke(s) for s in strokes)
        settings = cls(**kwargs)
        check_settings(settings)
        return settings


def _coerce_stroke(stroke: Any) -> Any:
    # [[strokes]] tables are accepted next to ["name", "profile"] arrays.
    if isinstance(stroke, dict):
        return (stroke.get("name"), stroke.get("profile"))
    if isinstance(stroke, (list, tuple)):
        return tuple(stroke)
    return stroke


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def validate_settings(s: Settings) -> List[str]:
    problems: List[str] = []

    if not s.strokes:
        problems.append("strokes must contain at least one (name, profile) pair")
    for i, stroke in enumerate(s.strokes):
        if (
            not isinstance(stroke, (list, tuple))
            or len(stroke) != 2
            or not all(isinstance(part, str) for part in stroke)
        ):
            problems.append(f"stroke {i} must be a (name, profile) pair of strings")

    for name in ("diameter_mm", "vertices_per_millimeter"):
        v = getattr(s, name)
        if not isinstance(v, int) or isinstance(v, bool) or v <= 0:
            problems.append(f"{name} must be a positive integer")

    for name in ("center_circle_radius_mm", "outer_circles_radius_mm", "outer_circles_margin_mm", "kerf_mm"):
        v = getattr(s, name)
        if not _is_number(v) or not v >= 0:
            problems.append(f"{name} must be a number >= 0")

    for name in ("generate_tooth", "generate_gaps", "display_stroke_names"):
        if not isinstance(getattr(s, name), bool):
            problems.append(f"{name} must be true or false")
    return problems


def check_settings(s: Settings) -> None:
    problems = validate_settings(s)
    if problems:
        raise ValueError("invalid settings: " + "; ".join(problems))


def load_settings(path: str) -> Settings:
    return Settings.from_dict(toml.load(path))


def settings_meta(s: Settings) -> Dict[str, Any]:
    meta = asdict(s)
    meta["stroke_count"] = len(meta.pop("strokes"))
    return meta


def blender_resolution_hint(s: Settings) -> int:
    return int(math.floor(math.pi * s.diameter_mm / len(s.strokes) * s.vertices_per_millimeter))


def build_disc(settings: Settings) -> DiscGeometry:
    check_settings(settings)
    n = len(settings.strokes)
    radius = settings.diameter_mm / 2.0
    p, q = sector_rectangle(radius, n)
    geometry = DiscGeometry(radius=radius, p=p, q=q)

    # Sector order matters: the angle accumulates across the loop.
    for i, ((name, profile), angle) in enumerate(zip(settings.strokes, sector_angles(n))):
        tokens = parse_profile(profile, continuation=i > 0)
        label_x, label_y = rotate_around_center((radius, radius - q + 2.0 * p), angle, radius)
        sector = SectorGeometry(
            index=i,
            angle=angle,
            outline=transform_profile(tokens, p=p, q=q, radius=radius, angle=angle),
            label=StrokeLabel(name, label_x, label_y, 360.0 / n * i),
            gradient=SectorGradient(i, 360.0 - angle / (2.0 * math.pi) * 360.0),
        )
        if settings.generate_gaps:
            sector.gaps = boundary_markers(tokens, p=p, q=q, radius=radius, angle=angle)
        if settings.generate_tooth:
            sector.tooth = tooth_marks(p=p, q=q, radius=radius, angle=angle)
        geometry.sectors.append(sector)

    head = geometry.outline()[0]
    if head.kind != MOVE_TO:
        raise ValueError("the first stroke must start with a move: 'M value,position'")

    vpm = settings.vertices_per_millimeter
    if settings.center_circle_radius_mm > 0:
        geometry.holes.append(circle_polygon(settings.center_circle_radius_mm, vpm, (radius, radius)))
    if settings.outer_circles_margin_mm > 0:
        h = settings.outer_circles_margin_mm / 2.0
        for center in (
            (radius - h, radius - h),
            (radius + h, radius - h),
            (radius + h, radius + h),
            (radius - h, radius + h),
        ):
            geometry.holes.append(circle_polygon(settings.outer_circles_radius_mm, vpm, center))
    return geometry


def default_sector_stop_colors(index: int) -> Tuple[str, str]:
    return ("#fff", "#fff")


def svg_header(diameter_mm: float) -> str:
    units = fmt(diameter_mm * MM_TO_DOCUMENT_UNITS)
    return (
        "<?xml version=\"1.0\" encoding=\"UTF-8\"?>\n"
        f"<svg xmlns=\"http://www.w3.org/2000/svg\" width=\"{fmt(diameter_mm)}mm\" height=\"{fmt(diameter_mm)}mm\" viewBox=\"0 0 {units} {units}\">\n"
        f"  <desc>Generated by camdiscgen v{__version__}</desc>\n"
    )


def svg_footer() -> str:
    return "</svg>\n"


def svg_gradients(
    sectors: List[SectorGeometry],
    sector_stop_colors: Callable[[int], Tuple[str, str]],
) -> str:
    out = ["    <defs>\n"]
    for sector in sectors:
        g = sector.gradient
        start, end = sector_stop_colors(g.index)
        out.append(
            f'      <linearGradient id="sector-gradient-{g.index}" x1="0%" y1="0%" x2="100%" y2="0%" '
            f'gradientTransform="rotate({fmt(g.rotation_deg)})">'
            f'<stop offset="0%" stop-color="{start}"/><stop offset="100%" stop-color="{end}"/>'
            "</linearGradient>\n"
        )
    out.append("    </defs>\n")
    return "".join(out)


def make_svg(
    geometry: DiscGeometry,
    settings: Settings,
    *,
    meta: Optional[dict] = None,
    sector_stop_colors: Optional[Callable[[int], Tuple[str, str]]] = None,
) -> str:
    if meta is None:
        meta = settings_meta(settings)
    meta_comment = "\n".join(textwrap.wrap(json.dumps(meta, ensure_ascii=False), width=120))

    outline = geometry.outline()
    if settings.kerf_mm > 0:
        polygons = offset_polygons_pyclipper(outline_polygons(outline), settings.kerf_mm / 2.0)
        outline = [s for poly in polygons for s in polyline_segments(poly, close=True)]

    out: List[str] = [svg_header(settings.diameter_mm)]
    out.append(f"  <!-- params: {meta_comment} -->\n")
    out.append(f'  <g transform="scale({MM_TO_DOCUMENT_UNITS})">\n')
    out.append(svg_gradients(geometry.sectors, sector_stop_colors or default_sector_stop_colors))
    out.append(
        f'    <path id="DISC" d="{segments_to_path(outline)}" stroke="none" fill="#ddd" fill-rule="evenodd"/>\n'
    )

    gaps = geometry.gaps()
    if settings.generate_gaps and gaps:
        out.append(f'    <path id="GAPS" d="{segments_to_path(gaps)}" stroke="#999" fill="none"/>\n')
    if settings.generate_tooth:
        out.append(f'    <path id="TEETH" d="{segments_to_path(geometry.teeth())}" stroke="#000" fill="none"/>\n')

    if settings.display_stroke_names:
        out.append('    <g id="LABELS">\n')
        for sector in geometry.sectors:
            lb = sector.label
            out.append(
                f'      <text text-anchor="middle" stroke="#000" '
                f'transform="translate({fmt(lb.x)},{fmt(lb.y)}) rotate({fmt(lb.rotation_deg)})">{escape(lb.name)}</text>\n'
            )
        out.append("    </g>\n")
    out.append("  </g>\n")
    out.append(svg_footer())
    return "".join(out)


def generate_svg(settings: Settings) -> str:
    return make_svg(build_disc(settings), settings)


def write_svg(svg: str, path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(svg)


def output_path_for(config_path: str) -> str:
    # The last 5 characters are expected to be the ".toml" extension.
    if len(config_path) <= 5:
        raise ValueError(f"cannot derive an output name from {config_path!r}")
    return config_path[:-5] + ".svg"


USAGE = """Cam disc designer.

Usage:
  camdiscgen <filename.toml>
  camdiscgen -h | --h
"""


class UsageParser(argparse.ArgumentParser):
    """Argument errors print the usage and exit with status 0."""

    def error(self, message: str):
        self.print_help()
        self.exit(0)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    ap = UsageParser(
        prog="camdiscgen",
        formatter_class=argparse.RawTextHelpFormatter,
        description=USAGE,
    )
    ap.add_argument("config", help="TOML disc configuration; the SVG is written next to it")
    ap.add_argument("--out", default=None, help="Output SVG path (default: config path with .svg)")
    return ap.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    out_path = args.out if args.out is not None else output_path_for(args.config)

    settings = load_settings(args.config)
    print(f"For 3D model: Set 'Resolution Preview U' in Blender = {blender_resolution_hint(settings)}.")

    # Built fully in memory; nothing is written if any step fails.
    svg = generate_svg(settings)
    write_svg(svg, out_path)
    print(f"Wrote {out_path}")


if __name__ == "__main__":
    main()
