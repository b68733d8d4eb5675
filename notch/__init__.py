"""Geometry kernel and export codecs for pipe notch (saddle) templates."""

from notch.params import (
    PipeParameters, TEMPLATE_KINDS, load_params,
    dxf_filename, pdf_filename, xlsx_filename, stl_filename,
)
from notch.mesh_builder import (
    GeometryResult, GeometryErrorKind, compute_mesh, to_trimesh,
)
from notch.contour import (
    compute_unrolled_contour, normalize_contour, contour_bounds, ordinate_table,
)
from notch.dxf_writer import write_dxf, export_dxf, load_dxf_contour
from notch.pdf_writer import write_pdf, render_pdf
from notch.excel_writer import export_ordinates

__all__ = [
    'PipeParameters', 'TEMPLATE_KINDS', 'load_params',
    'dxf_filename', 'pdf_filename', 'xlsx_filename', 'stl_filename',
    'GeometryResult', 'GeometryErrorKind', 'compute_mesh', 'to_trimesh',
    'compute_unrolled_contour', 'normalize_contour', 'contour_bounds',
    'ordinate_table', 'write_dxf', 'export_dxf', 'load_dxf_contour',
    'write_pdf', 'render_pdf', 'export_ordinates',
]
