import math

import pytest

import camdiscgen as gen


def test_parse_profile_commands_and_positions():
    tokens = gen.parse_profile("M 0,0 L 12.5,10 L 0,30")
    assert tokens == [
        gen.ProfileCommand("M", 0.0, 0.0, "0"),
        gen.ProfileCommand("L", 12.5, 10.0, "10"),
        gen.ProfileCommand("L", 0.0, 30.0, "30"),
    ]


def test_continuation_turns_move_into_line():
    tokens = gen.parse_profile("M 0,0 L 0,30", continuation=True)
    assert [t.kind for t in tokens] == ["L", "L"]


def test_pairs_after_move_are_lines():
    tokens = gen.parse_profile("M 0,0 5,10 0,30")
    assert [t.kind for t in tokens] == ["M", "L", "L"]


def test_literal_tokens_pass_through():
    tokens = gen.parse_profile("M 0,0 Q 3,15 0,30")
    assert tokens[1] == gen.ProfileLiteral("Q")
    assert tokens[2].kind == "L"


def test_extra_whitespace_is_ignored():
    tokens = gen.parse_profile("  M   0,0\tL 0,30 ")
    assert len(tokens) == 2


@pytest.mark.parametrize("profile", ["M a,0", "M 0,0,0", "M 0,", "M ,3"])
def test_malformed_pairs_are_rejected(profile):
    with pytest.raises(ValueError):
        gen.parse_profile(profile)


@pytest.mark.parametrize("profile", ["M 31,0", "M 0,30.5", "M -1,0", "M nan,3"])
def test_values_outside_domain_are_rejected(profile):
    with pytest.raises(ValueError):
        gen.parse_profile(profile)


def test_map_profile_point_frame():
    radius = 50.0
    p, q = gen.sector_rectangle(radius, 4)
    assert gen.map_profile_point(0, 0, p, q, radius) == pytest.approx((radius - p, radius - q - 2 * p / 3))
    assert gen.map_profile_point(30, 30, p, q, radius) == pytest.approx((radius + p, radius - q + 4 * p / 3))
    assert gen.map_profile_point(0, 15, p, q, radius)[0] == pytest.approx(radius)


def test_transform_profile_keeps_token_order_and_literals():
    radius = 50.0
    p, q = gen.sector_rectangle(radius, 4)
    tokens = gen.parse_profile("M 0,0 Q 0,30")
    segments = gen.transform_profile(tokens, p=p, q=q, radius=radius, angle=0.0)

    assert [s.kind for s in segments] == ["M", "Q", "L"]
    assert segments[0].point == pytest.approx(gen.map_profile_point(0, 0, p, q, radius))
    assert segments[1].point is None
    assert " Q " in gen.segments_to_path(segments)


def test_transform_profile_rotates_into_sector():
    radius = 50.0
    p, q = gen.sector_rectangle(radius, 4)
    tokens = gen.parse_profile("M 0,15")
    (seg,) = gen.transform_profile(tokens, p=p, q=q, radius=radius, angle=math.pi / 2)
    # The sector midline points up at angle 0 and to the right after a quarter turn.
    assert seg.point[0] > radius
    assert seg.point[1] == pytest.approx(radius, abs=1e-9)


def test_segments_to_path_format():
    segments = [
        gen.PathSegment("M", (1.0, 2.0)),
        gen.PathSegment("L", (3.25, 4.0)),
        gen.PathSegment("Z"),
    ]
    assert gen.segments_to_path(segments) == "M 1,2 L 3.25,4 Z"
