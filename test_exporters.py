import json
import logging
import re
from datetime import datetime

import numpy as np
import openpyxl
import pytest
from matplotlib.colors import to_rgb

from notch.params import (
    PipeParameters, load_params, format_number,
    dxf_filename, pdf_filename, xlsx_filename, stl_filename,
)
from notch.contour import compute_unrolled_contour
from notch.dxf_writer import (
    DxfWriter, create_dxf_string, write_dxf, export_dxf, load_dxf_contour,
)
from notch.pdf_writer import (
    compute_page_layout, fit_pipe_metadata, ruler_ticks, build_figure,
    render_pdf, write_pdf, META_FONT_MIN, META_FONT_MAX, MARGIN_LEFT,
    MARGIN_BOTTOM, MM_PER_INCH,
)
from notch.excel_writer import export_ordinates

CREATED = datetime(2024, 5, 21, 10, 30)


def make_params(**changes):
    params = PipeParameters(d1=100, d2=50, thickness=5, angle=90)
    return params.replace(**changes) if changes else params


# --- parameters and file names ---

def test_from_dict_accepts_both_spellings():
    params = PipeParameters.from_dict({'d1': 200, 'weldingGap': 1.5,
                                       'start_angle': 30, 'calcByID': "false"})
    assert params.d1 == 200.0
    assert params.welding_gap == 1.5
    assert params.start_angle == 30.0
    assert params.calc_by_id is False
    assert params.d2 == 50.0


def test_from_dict_rejects_bad_input():
    with pytest.raises(ValueError):
        PipeParameters.from_dict({'diameter': 100})
    with pytest.raises(ValueError):
        PipeParameters.from_dict({'d1': "wide"})


def test_load_params_nested(tmp_path):
    path = tmp_path / "params.json"
    path.write_text(json.dumps({'params': {'d1': 150, 'd2': 60, 'angle': 30}}))
    params = load_params(path)
    assert (params.d1, params.d2, params.angle) == (150.0, 60.0, 30.0)


def test_radii():
    params = make_params()
    assert params.r1 == 50
    assert params.r2_outer == 25
    assert params.r2_inner == 20
    assert params.r2_calc == 25
    assert params.replace(calc_by_id=False).r2_calc == 20


def test_file_names():
    params = make_params()
    assert format_number(100.0) == "100"
    assert format_number(22.5) == "22.5"
    assert dxf_filename(params, "pipe") == "notch_D50_on_D100_90deg_pipe.dxf"
    assert dxf_filename(params.replace(angle=22.5), "hole") == "notch_D50_on_D100_22.5deg_hole.dxf"
    assert pdf_filename(params, "hole") == "notch_D100_D50_hole.pdf"
    assert xlsx_filename(params) == "notch_D50_on_D100_ordinates.xlsx"
    assert stl_filename(params) == "notch_D50_on_D100_90deg_branch.stl"
    with pytest.raises(ValueError):
        pdf_filename(params, "flange")


# --- DXF ---

def test_dxf_pipe_entity_order():
    text = write_dxf(compute_unrolled_contour(make_params(), "pipe"), "pipe")
    positions = [text.index(tag) for tag in ("SECTION", "POLYLINE", "VERTEX", "SEQEND", "EOF")]
    assert positions == sorted(positions)
    assert text.startswith("0\nSECTION\n2\nENTITIES\n")
    assert text.endswith("0\nENDSEC\n0\nEOF\n")


def test_dxf_pipe_outline_drops_to_sheet_bottom():
    contour = compute_unrolled_contour(make_params(), "pipe")
    text = write_dxf(contour, "pipe")
    assert text.count("0\nPOLYLINE\n") == 1
    assert "70\n1\n" in text
    # Corner, contour, corner, back to start: already closed, no extra vertex
    assert text.count("0\nVERTEX\n") == len(contour) + 3
    assert "0\nVERTEX\n8\n0\n10\n0.0000\n20\n0.0000\n30\n0.0\n" in text


def test_dxf_hole_has_red_centerlines():
    text = write_dxf(compute_unrolled_contour(make_params(), "hole"), "hole")
    assert text.count("0\nLINE\n8\nCenterLines\n62\n1\n") == 2
    assert text.count("0\nPOLYLINE\n") == 1


def test_dxf_closed_polyline_gets_closing_vertex():
    triangle = [(0, 0), (10, 0), (10, 10)]
    assert create_dxf_string(triangle, closed=True).count("0\nVERTEX\n") == 4
    assert create_dxf_string(triangle, closed=False).count("0\nVERTEX\n") == 3
    assert create_dxf_string(triangle + [(0, 0)], closed=True).count("0\nVERTEX\n") == 4
    assert "70\n0\n" in create_dxf_string(triangle, closed=False)


def test_dxf_line_color_is_optional():
    writer = DxfWriter()
    writer.add_line((0, 0), (5, 5))
    text = writer.to_string()
    assert "62\n" not in text
    assert "10\n0.0000\n20\n0.0000\n30\n0.0\n11\n5.0000\n21\n5.0000\n31\n0.0\n" in text


def test_dxf_to_string_is_repeatable():
    writer = DxfWriter()
    writer.add_rectangle(0, 0, 20, 10)
    assert writer.to_string() == writer.to_string()
    assert writer.to_string().count("EOF") == 1


def test_write_dxf_is_repeatable():
    for kind in ("pipe", "hole"):
        contour = compute_unrolled_contour(make_params(angle=60), kind)
        before = contour.copy()
        assert write_dxf(contour, kind) == write_dxf(contour.copy(), kind)
        assert np.array_equal(contour, before)


def test_dxf_formatting():
    text = create_dxf_string([(-0.0, 1.23457), (2.5, -3.0)], closed=False)
    assert "10\n0.0000\n20\n1.2346\n" in text
    assert "10\n2.5000\n20\n-3.0000\n" in text


def test_dxf_empty_contour():
    assert write_dxf(np.zeros((0, 2)), "pipe") == ""
    assert export_dxf(make_params(offset=80), "hole") == ""


def test_dxf_read_back(tmp_path):
    contour = compute_unrolled_contour(make_params(angle=60), "pipe")
    path = tmp_path / "pipe.dxf"
    path.write_text(write_dxf(contour, "pipe"))

    points = load_dxf_contour(str(path))
    assert len(points) == len(contour) + 3
    assert np.allclose(points[0], [0.0, 0.0])
    assert np.allclose(points[1:-2], contour, atol=1e-4)


# --- PDF ---

def test_page_layout():
    layout = compute_page_layout(np.array([[0.0, 20.0], [100.0, 50.0]]))
    assert layout.page_width == 140
    assert layout.page_height == 100
    assert layout.content_width == 100
    assert layout.content_height == 50
    assert layout.orientation == "landscape"

    x, y = layout.to_page(0.0, 0.0)
    assert (float(x), float(y)) == (20.0, 80.0)
    x, y = layout.to_page(100.0, 50.0)
    assert (float(x), float(y)) == (120.0, 30.0)


def test_page_layout_portrait():
    layout = compute_page_layout(np.array([[0.0, 0.0], [50.0, 300.0]]))
    assert layout.orientation == "portrait"


def test_pipe_metadata_fits_on_sheet():
    contour = compute_unrolled_contour(make_params(angle=45), "pipe")
    left, top, fontsize = fit_pipe_metadata(contour, ["Branch Template (D2)", "D1 = 100 mm"])
    assert META_FONT_MIN <= fontsize <= META_FONT_MAX
    assert contour[:, 0].min() <= left < contour[:, 0].max()
    assert top < contour[:, 1].max()


def test_render_pdf():
    params = make_params(angle=45)
    for kind in ("pipe", "hole"):
        data = render_pdf(compute_unrolled_contour(params, kind), params, kind, CREATED)
        assert data.startswith(b"%PDF")


MEDIABOX = re.compile(rb"/MediaBox\s*\[\s*0\s+0\s+([\d.]+)\s+([\d.]+)\s*\]")


def test_pdf_page_is_full_scale():
    params = make_params(angle=45)
    for kind in ("pipe", "hole"):
        contour = compute_unrolled_contour(params, kind)
        layout = compute_page_layout(contour)
        match = MEDIABOX.search(render_pdf(contour, params, kind, CREATED))
        assert match is not None
        width_pt, height_pt = (float(v) for v in match.groups())
        assert width_pt == pytest.approx(layout.page_width / MM_PER_INCH * 72, abs=0.01)
        assert height_pt == pytest.approx(layout.page_height / MM_PER_INCH * 72, abs=0.01)


def test_ruler_ticks():
    ticks = ruler_ticks(0.0, 360.0)
    assert len(ticks) == 721
    heights = {deg: h for deg, _, h in ticks}
    assert heights[0] == 4.0
    assert heights[90] == 4.0
    assert heights[5] == 2.5
    assert heights[7] == 1.5
    assert heights[7.5] == 1.0

    tiers = [h for _, _, h in ticks]
    assert tiers.count(4.0) == 37
    assert tiers.count(2.5) == 36
    assert tiers.count(1.5) == 288
    assert tiers.count(1.0) == 360
    assert ticks[360][1] == pytest.approx(180.0)
    assert ticks[-1][1] == pytest.approx(360.0)


def test_pipe_sheet_drawing():
    params = make_params(angle=45)
    contour = compute_unrolled_contour(params, "pipe")
    fig, layout = build_figure(contour, params, "pipe", CREATED)
    ax = fig.axes[0]

    sheet_bottom = layout.page_height - MARGIN_BOTTOM
    right = MARGIN_LEFT + layout.content_width
    bottom, left_edge, right_edge = ax.lines[1:4]
    assert np.allclose(bottom.get_ydata(), sheet_bottom)
    assert np.allclose(bottom.get_xdata(), [MARGIN_LEFT, right])
    assert np.allclose(left_edge.get_xdata(), MARGIN_LEFT)
    assert np.allclose(right_edge.get_xdata(), right)
    assert left_edge.get_ydata()[0] == pytest.approx(sheet_bottom)

    assert len(ax.collections[0].get_segments()) == 721
    labels = [t.get_text() for t in ax.texts if t.get_text().isdigit()]
    assert labels == [str(d) for d in range(0, 361, 10)]

    assert (1.0, 0.0, 0.0) not in [to_rgb(line.get_color()) for line in ax.lines]


def test_hole_sheet_drawing():
    params = make_params(angle=45)
    contour = compute_unrolled_contour(params, "hole")
    fig, _ = build_figure(contour, params, "hole", CREATED)
    ax = fig.axes[0]

    outline, closing = ax.lines[0], ax.lines[1]
    assert np.allclose(closing.get_xdata(), [outline.get_xdata()[-1], outline.get_xdata()[0]])
    assert np.allclose(closing.get_ydata(), [outline.get_ydata()[-1], outline.get_ydata()[0]])

    red = [line for line in ax.lines if to_rgb(line.get_color()) == (1.0, 0.0, 0.0)]
    assert len(red) == 2
    vertical, horizontal = red
    assert np.ptp(vertical.get_xdata()) == pytest.approx(0.0)
    assert np.ptp(horizontal.get_ydata()) == pytest.approx(0.0)
    assert not ax.collections


def test_crowded_metadata_is_reported(caplog):
    contour = compute_unrolled_contour(make_params(padding_d2=0), "pipe")
    lines = ["Branch Template (D2)"] + [f"Line {i}" for i in range(8)]
    with caplog.at_level(logging.WARNING, logger="notch.pdf_writer"):
        _, _, fontsize = fit_pipe_metadata(contour, lines)
    assert fontsize == META_FONT_MIN
    assert any("overlaps the ruler" in r.getMessage() for r in caplog.records)


def test_pdf_without_geometry():
    assert render_pdf(np.zeros((0, 2)), make_params(), "pipe") == b""
    assert write_pdf(make_params(offset=80), "pipe", CREATED) == b""


# --- Excel ---

def test_export_ordinates(tmp_path):
    path = tmp_path / "ordinates.xlsx"
    export_ordinates(make_params(), path, step_deg=10, project_info={'project': "Tee"})

    wb = openpyxl.load_workbook(path)
    assert wb.sheetnames == ["Parameters", "Pipe Template", "Hole Template"]
    assert wb["Parameters"]["B3"].value == "Tee"

    ws = wb["Pipe Template"]
    assert ws["A1"].value == "Station (deg)"
    assert ws.max_row == 38
    assert ws["A2"].value == 0


def test_export_ordinates_without_geometry(tmp_path):
    path = tmp_path / "miss.xlsx"
    export_ordinates(make_params(offset=80), path)

    wb = openpyxl.load_workbook(path)
    assert "do not intersect" in wb["Hole Template"]["A2"].value
