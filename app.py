import streamlit as st
import plotly.graph_objects as go
import pandas as pd
import numpy as np
import os
import tempfile
import logging
from datetime import datetime

from notch.params import (
    PipeParameters, dxf_filename, pdf_filename, xlsx_filename,
)
from notch.mesh_builder import (
    compute_mesh, to_trimesh, main_pipe_mesh, mesh_to_plotly, seam_points,
)
from notch.contour import compute_unrolled_contour, ordinate_table
from notch.dxf_writer import write_dxf, DXF_MIME
from notch.pdf_writer import render_pdf
from notch.excel_writer import export_ordinates
from notch.logging_config import setup_logging

# --- CONFIG ---
st.set_page_config(page_title="Pipe Notch Template", layout="wide")
setup_logging(logging.INFO)

DEFAULTS = PipeParameters()

if 'segments' not in st.session_state:
    st.session_state.segments = 128

# --- SIDEBAR ---
with st.sidebar:
    st.title("Parameters")

    st.subheader("1. Pipes")
    d1 = st.number_input("Main pipe D1 (mm)", value=DEFAULTS.d1, min_value=0.0, step=1.0)
    d2 = st.number_input("Branch pipe D2 (mm)", value=DEFAULTS.d2, min_value=0.0, step=1.0)
    thickness = st.number_input("Wall thickness (mm)", value=DEFAULTS.thickness,
                                min_value=0.0, step=0.5)

    st.subheader("2. Intersection")
    angle = st.slider("Angle (°)", 1.0, 90.0, DEFAULTS.angle, step=0.5)
    offset = st.number_input("Center offset (mm)", value=DEFAULTS.offset, step=1.0)
    welding_gap = st.number_input("Welding gap (mm)", value=DEFAULTS.welding_gap, step=0.5)
    start_angle = st.slider("Seam rotation (°)", 0.0, 360.0, DEFAULTS.start_angle, step=1.0)
    calc_mode = st.radio("Intersection by", ["OD (deep cut)", "ID"], horizontal=True)

    st.subheader("3. Sheet")
    padding_d1 = st.number_input("Padding hole template (mm)", value=DEFAULTS.padding_d1,
                                 min_value=0.0, step=1.0)
    padding_d2 = st.number_input("Padding pipe template (mm)", value=DEFAULTS.padding_d2,
                                 min_value=0.0, step=1.0)
    step_deg = st.selectbox("Ordinate table step (°)", [5, 10, 15, 30], index=1)

params = PipeParameters(
    d1=d1, d2=d2, thickness=thickness, angle=angle, offset=offset,
    welding_gap=welding_gap, start_angle=start_angle,
    padding_d1=padding_d1, padding_d2=padding_d2,
    calc_by_id=calc_mode.startswith("OD"),
)

result = compute_mesh(params, st.session_state.segments)

# --- MAIN AREA ---
st.header(f"Notch D{d2:g} on D{d1:g} at {angle:g}°")

if not result.is_valid:
    st.error(result.error)

col1, col2 = st.columns([2, 1])

with col1:
    st.subheader("3D Preview")

    fig = go.Figure()
    if params.has_valid_diameters():
        fig.add_trace(mesh_to_plotly(main_pipe_mesh(params), "Main pipe D1", "lightgray", 0.35))

    if result.is_valid:
        fig.add_trace(mesh_to_plotly(to_trimesh(result), "Branch D2", "steelblue", 0.8))

        seam = seam_points(result)
        fig.add_trace(go.Scatter3d(
            x=seam[:, 0], y=seam[:, 1], z=seam[:, 2],
            mode='lines', name="Cut line", line=dict(color='red', width=6)
        ))

    fig.update_layout(scene_aspectmode='data', height=600)
    st.plotly_chart(fig, use_container_width=True)

contours = {kind: compute_unrolled_contour(params, kind) for kind in ("pipe", "hole")}

with col2:
    st.subheader("Unrolled Templates")

    for kind, title in (("pipe", "Branch template (D2)"), ("hole", "Hole template (D1)")):
        contour = contours[kind]
        if len(contour) == 0:
            st.warning(f"{title}: no geometry")
            continue

        fig_2d = go.Figure()
        if kind == "pipe":
            x = np.concatenate([[contour[0, 0]], contour[:, 0], [contour[-1, 0], contour[0, 0]]])
            y = np.concatenate([[0.0], contour[:, 1], [0.0, 0.0]])
        else:
            x = np.append(contour[:, 0], contour[0, 0])
            y = np.append(contour[:, 1], contour[0, 1])
        fig_2d.add_trace(go.Scatter(x=x, y=y, mode='lines', name=title,
                                    line=dict(color='black')))
        fig_2d.update_layout(title=title, height=300, showlegend=False,
                             yaxis=dict(scaleanchor='x', scaleratio=1),
                             margin=dict(l=10, r=10, t=40, b=10))
        st.plotly_chart(fig_2d, use_container_width=True)

# --- ORDINATES ---
st.divider()
st.subheader("Ordinate Table")

tab_pipe, tab_hole = st.tabs(["Pipe", "Hole"])
for tab, kind in ((tab_pipe, "pipe"), (tab_hole, "hole")):
    with tab:
        rows = ordinate_table(params, kind, step_deg)
        if rows:
            df = pd.DataFrame(rows, columns=["Station (°)", "X (mm)", "Y (mm)"])
            st.dataframe(df.round(2), height=300)
        else:
            st.info("No geometry: the pipes do not intersect.")

# --- EXPORTS ---
st.subheader("Downloads")

exportable = result.is_valid
c_dxf, c_pdf, c_xlsx = st.columns(3)

with c_dxf:
    for kind in ("pipe", "hole"):
        contour = contours[kind]
        st.download_button(
            f"DXF {kind}",
            data=write_dxf(contour, kind) if exportable else "",
            file_name=dxf_filename(params, kind),
            mime=DXF_MIME,
            disabled=not exportable or len(contour) == 0,
            key=f"dxf_{kind}",
        )

with c_pdf:
    for kind in ("pipe", "hole"):
        contour = contours[kind]
        ok = exportable and len(contour) > 0
        st.download_button(
            f"PDF {kind} (1:1)",
            data=render_pdf(contour, params, kind) if ok else b"",
            file_name=pdf_filename(params, kind),
            mime="application/pdf",
            disabled=not ok,
            key=f"pdf_{kind}",
        )

with c_xlsx:
    if exportable:
        with tempfile.NamedTemporaryFile(suffix=".xlsx", delete=False) as tmp:
            tpath = tmp.name
        try:
            info = {'project': "Pipe notch", 'date': datetime.now().strftime("%Y-%m-%d")}
            export_ordinates(params, tpath, step_deg, info)
            with open(tpath, "rb") as f:
                xlsx_bytes = f.read()
        finally:
            os.unlink(tpath)
    else:
        xlsx_bytes = b""

    st.download_button(
        "Excel ordinates",
        data=xlsx_bytes,
        file_name=xlsx_filename(params),
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        disabled=not exportable,
    )
