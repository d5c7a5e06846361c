import itertools

import numpy as np
import pytest
from PIL import Image

import WrapController as controller_mod
from WrapCompositor import (
    BLUR_OVERLAY,
    BORDER_ELEMENT,
    IMAGE_WRAP,
    MIRROR_WRAP,
    MODE_OVERLAYS,
    OVERLAY_NAMES,
    EffectMode,
)
from WrapController import WrapController
from WrapErrors import ConfigurationError, OverlayUninitialized


def _visible(ctl):
    return {name for name in OVERLAY_NAMES if ctl.overlay(name).visible}


@pytest.fixture
def composite_calls(monkeypatch):
    calls = []
    real = controller_mod.composite

    def spy(mode, snapshot, dims, params=None):
        calls.append(mode)
        return real(mode, snapshot, dims, params)

    monkeypatch.setattr(controller_mod, "composite", spy)
    return calls


# ----------------------------------------------------------
# Setup
# ----------------------------------------------------------

def test_setup_creates_hidden_overlays(ctl):
    w, h = ctl.dimensions.total_px

    assert (ctl.surface.width, ctl.surface.height) == (w, h) == (180, 216)
    for name in OVERLAY_NAMES:
        o = ctl.overlay(name)
        assert o.visible is False
        assert o.selectable is False and o.draggable is False and o.always_on_top is True
        assert (o.width, o.height) == (w, h)
        assert o.show_in_export is (name == BORDER_ELEMENT)


def test_setup_is_idempotent(ctl):
    n = len(ctl.surface.elements)
    ctl.setup()
    assert len(ctl.surface.elements) == n


def test_composite_before_setup_aborts(settings, fake_after):
    c = WrapController(settings=settings, after=fake_after, setup=False)
    with pytest.raises(OverlayUninitialized):
        c.set_effect_mode("mirror")
    assert c.regenerate() is False
    assert c.mode is EffectMode.NONE


# ----------------------------------------------------------
# Mode exclusivity
# ----------------------------------------------------------

@pytest.mark.parametrize("before, after", list(itertools.product(EffectMode, EffectMode)))
def test_mode_switch_is_exclusive(ctl, before, after):
    ctl.set_effect_mode(before)
    ctl.set_effect_mode(after)

    assert _visible(ctl) == set(MODE_OVERLAYS[after])
    assert ctl.mode is after


def test_mirror_none_border(ctl):
    ctl.set_effect_mode("mirror")
    ctl.set_effect_mode("none")
    ctl.set_effect_mode("border")

    assert ctl.overlay(MIRROR_WRAP).visible is False
    assert ctl.overlay(BORDER_ELEMENT).visible is True
    assert ctl.overlay(IMAGE_WRAP).visible is False
    assert ctl.overlay(BLUR_OVERLAY).visible is False


def test_image_wrap_writes_both_overlays(ctl):
    ctl.set_effect_mode(EffectMode.IMAGE_WRAP)

    for name in (IMAGE_WRAP, BLUR_OVERLAY):
        src = ctl.overlay(name).src
        assert isinstance(src, Image.Image)
        assert src.size == ctl.dimensions.total_px


def test_mode_switch_does_not_schedule_regeneration(ctl, fake_after):
    ctl.set_effect_mode("mirror")
    ctl.set_effect_mode("imageWrap")
    assert fake_after.jobs == []


def test_unknown_mode_rejected(ctl):
    with pytest.raises(ConfigurationError):
        ctl.set_effect_mode("vignette")
    assert ctl.mode is EffectMode.NONE


# ----------------------------------------------------------
# Debounced regeneration
# ----------------------------------------------------------

def test_two_edits_in_window_composite_once(ctl, fake_after, composite_calls):
    ctl.set_effect_mode("mirror")
    composite_calls.clear()

    el = ctl.design_elements()[0]
    el.set(x=5)
    el.set(y=5)

    assert len(fake_after.jobs) == 1
    fake_after.run_pending()

    assert composite_calls == [EffectMode.MIRROR]


def test_regeneration_tracks_edits(ctl, fake_after):
    ctl.set_effect_mode("mirror")
    before = np.array(ctl.overlay(MIRROR_WRAP).src)

    ctl.design_elements()[0].set(x=40)
    fake_after.run_pending()

    after = np.array(ctl.overlay(MIRROR_WRAP).src)
    assert not np.array_equal(before, after)
    # the write-back itself must not re-arm the timer
    assert fake_after.jobs == []


def test_edits_ignored_without_content_effect(ctl, fake_after):
    ctl.set_effect_mode("border")
    ctl.design_elements()[0].set(x=3)
    assert fake_after.jobs == []


def test_snapshot_failure_keeps_previous_overlay(ctl, fake_after, tmp_path):
    ctl.set_effect_mode("mirror")
    previous = ctl.overlay(MIRROR_WRAP).src

    ctl.surface.add_element(src=tmp_path / "missing.png", width=10, height=10)
    assert len(fake_after.jobs) == 1
    fake_after.run_pending()

    assert ctl.overlay(MIRROR_WRAP).src is previous
    assert ctl.overlay(MIRROR_WRAP).visible is True


def test_stale_regeneration_is_discarded(ctl, monkeypatch):
    ctl.set_effect_mode("mirror")
    previous = ctl.overlay(MIRROR_WRAP).src
    real = controller_mod.composite

    def newer_request_starts(mode, snapshot, dims, params=None):
        # a newer regeneration/mode switch begins while this one composes
        ctl._regen_seq += 1
        return real(mode, snapshot, dims, params)

    monkeypatch.setattr(controller_mod, "composite", newer_request_starts)

    assert ctl.regenerate() is False
    assert ctl.overlay(MIRROR_WRAP).src is previous


def test_regenerate_with_no_mode_is_noop(ctl, composite_calls):
    assert ctl.regenerate() is False
    assert composite_calls == []


# ----------------------------------------------------------
# Size / border changes
# ----------------------------------------------------------

def test_product_size_change_rescales(ctl):
    el = ctl.surface.add_element(x=18, y=36, width=90, height=54)
    old_w, old_h = ctl.dimensions.total_px

    ctl.set_product_size("12x12")
    new_w, new_h = ctl.dimensions.total_px

    assert (new_w, new_h) == (12 * 18 + 36, 12 * 18 + 36)
    assert (ctl.surface.width, ctl.surface.height) == (new_w, new_h)
    assert el.x == pytest.approx(18 * new_w / old_w)
    assert el.y == pytest.approx(36 * new_h / old_h)
    assert el.width == pytest.approx(90 * new_w / old_w)
    assert el.height == pytest.approx(54 * new_h / old_h)
    for name in OVERLAY_NAMES:
        assert (ctl.overlay(name).width, ctl.overlay(name).height) == (new_w, new_h)


def test_size_change_reapplies_active_mode(ctl):
    ctl.set_effect_mode("border")
    ctl.set_product_size("20x20")

    src = ctl.overlay(BORDER_ELEMENT).src
    assert src.size == ctl.dimensions.total_px
    assert ctl.overlay(BORDER_ELEMENT).visible is True


def test_unknown_size_leaves_state_unchanged(ctl):
    el = ctl.design_elements()[0]
    geom = (el.x, el.y, el.width, el.height)
    dims = ctl.dimensions

    with pytest.raises(ConfigurationError):
        ctl.set_product_size("11x17")

    assert ctl.dimensions == dims
    assert ctl.state.size_key == "8x10"
    assert (el.x, el.y, el.width, el.height) == geom


def test_border_width_change(ctl):
    ctl.set_border_width(1.5)

    d = ctl.dimensions
    assert d.border_width_px == pytest.approx(27)
    assert d.back_border_px == pytest.approx(9)
    assert d.total_px == (144 + 72, 180 + 72)


def test_border_width_clamped_and_validated(ctl):
    ctl.set_border_width(50)
    assert ctl.state.border_width_inches == 3.0

    with pytest.raises(ConfigurationError):
        ctl.set_border_width(0)
    with pytest.raises(ConfigurationError):
        ctl.set_border_width("wide")


def test_border_color_reapplies_live(ctl):
    ctl.set_effect_mode("border", border_color="#ff0000")
    assert tuple(np.array(ctl.overlay(BORDER_ELEMENT).src)[0, 0]) == (255, 0, 0, 255)

    ctl.set_border_color((0, 0, 255))
    assert tuple(np.array(ctl.overlay(BORDER_ELEMENT).src)[0, 0]) == (0, 0, 255, 255)

    with pytest.raises(ConfigurationError):
        ctl.set_border_color("not-a-color")


def test_unknown_effect_param_rejected(ctl):
    with pytest.raises(ConfigurationError):
        ctl.set_effect_mode("border", glow=True)


def test_rejected_params_leave_session_untouched(ctl):
    ctl.set_effect_mode("mirror")
    mirror_src = ctl.overlay(MIRROR_WRAP).src
    el = ctl.design_elements()[0]
    geom = (el.x, el.y, el.width, el.height)
    dims = ctl.dimensions
    page = (ctl.surface.width, ctl.surface.height)

    with pytest.raises(ConfigurationError):
        ctl.set_effect_mode("border", border_color="#ff0000", border_width_inches=1.5, glow=True)

    assert ctl.state.border_color == "#000000"
    assert ctl.state.border_width_inches == 0.75
    assert ctl.dimensions == dims
    assert (ctl.surface.width, ctl.surface.height) == page
    assert (el.x, el.y, el.width, el.height) == geom
    assert ctl.mode is EffectMode.MIRROR
    assert ctl.overlay(MIRROR_WRAP).src is mirror_src
    assert ctl.overlay(MIRROR_WRAP).width == page[0]


def test_effect_params_applied_together(ctl):
    ctl.set_effect_mode("border", border_color="#00ff00", border_width_inches=1.5)

    assert ctl.dimensions.total_px == (144 + 72, 180 + 72)
    src = ctl.overlay(BORDER_ELEMENT).src
    assert src.size == ctl.dimensions.total_px
    assert tuple(np.array(src)[0, 0]) == (0, 255, 0, 255)


# ----------------------------------------------------------
# Upload / preview
# ----------------------------------------------------------

def test_upload_goes_to_bottom(ctl, design):
    top = ctl.surface.add_element(x=0, y=0, width=10, height=10)
    el = ctl.upload_image(design)

    assert ctl.surface.elements[0] is el
    assert (el.width, el.height) == (ctl.surface.width, ctl.surface.height)
    assert top in ctl.surface.elements


def test_upload_from_path(ctl, design, tmp_path):
    p = tmp_path / "design.png"
    design.save(p)
    el = ctl.upload_image(p)
    assert isinstance(el.src, Image.Image)


def test_upload_rejects_other_types(ctl):
    with pytest.raises(TypeError):
        ctl.upload_image(42)


def test_render_preview_stacks_visible_overlays(ctl):
    ctl.set_effect_mode("border", border_color="#00ff00")
    out = np.array(ctl.render_preview())

    assert out.shape[:2] == (216, 180)
    assert tuple(out[0, 0]) == (0, 255, 0, 255)
