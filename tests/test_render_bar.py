import pytest

from logbar import PROGRESS_BAR_STYLES, render_bar


@pytest.mark.parametrize('style', ['shadow', 'block', 'classic'])
@pytest.mark.parametrize('width', [1, 5, 20])
@pytest.mark.parametrize('fraction', [0, 0.001, 0.5, 0.999, 1.0])
def test_bar_is_always_width_cells(style, width, fraction):
    assert len(render_bar(style, fraction, width)) == width


def test_empty_bar_is_padding_only():
    assert render_bar('shadow', 0, 8) == ' ' * 8


def test_full_bar_has_no_padding():
    assert render_bar('shadow', 1.0, 8) == '█' * 8
    assert render_bar('classic', 1.0, 3) == '==='


def test_empty_glyph_pads_the_line_style():
    empty = PROGRESS_BAR_STYLES['line'][0]
    full = PROGRESS_BAR_STYLES['line'][100]
    assert render_bar('line', 0, 3) == empty * 3
    assert render_bar('line', 0.5, 4) == full * 2 + empty * 2


def test_largest_reached_threshold_wins():
    assert render_bar({50: 'a', 75: 'b', 100: 'c'}, 0.6, 1) == 'b'


def test_threshold_boundary_is_inclusive():
    assert render_bar('shadow', 0.5, 1) == '▒'
    assert render_bar('shadow', 0.75, 1) == '▓'


def test_partial_cell_below_smallest_threshold_is_blank():
    assert render_bar('shadow', 0.2, 1) == ' '
    assert render_bar('classic', 0.9, 1) == ' '


def test_whole_and_partial_cells():
    assert render_bar('shadow', 0.5, 5) == '██▒  '
    assert render_bar('block', 0.5, 4) == '██  '
    assert render_bar('block', 0.3, 2) == '▌ '


def test_unknown_style_fails():
    with pytest.raises(ValueError, match='unknown progress bar style'):
        render_bar('plasma', 0.5, 10)
