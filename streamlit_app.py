"""
Mosaic Collage: Preview

Run with:
    streamlit run streamlit_app.py
"""

from __future__ import annotations

import time

import streamlit as st
import streamlit.components.v1 as components

from mosaic_collage.config import CollageConfig
from mosaic_collage.html_export import render_stage
from mosaic_collage.layout import compute_layout
from mosaic_collage.markup import parse_image_list
from mosaic_collage.probe import measure_ratios
from mosaic_collage.ratios import ratio_from_url

# -- Page config -------------------------------------------------------
st.set_page_config(
    page_title="Mosaic Collage",
    page_icon=None,
    layout="wide",
    initial_sidebar_state="collapsed",
)

_DEFAULTS = CollageConfig()
_SAMPLE_IMAGES = ",".join([
    "https://picsum.photos/id/1015/1600/900",
    "https://picsum.photos/id/1025/800/800",
    "https://picsum.photos/id/1035/600/900",
    "https://picsum.photos/id/1043/1200/800",
    "https://picsum.photos/id/1050/900/1200",
    "https://picsum.photos/id/1062/1000/700",
    "https://picsum.photos/id/1074/700/700",
])

# -- CSS ---------------------------------------------------------------
st.markdown("""
<style>
    .stApp {
        background-color: #faf9f6;
        color: #2a2a2a;
        font-family: 'Inter', 'Helvetica Neue', sans-serif;
    }
    .block-container {
        max-width: 1100px;
        padding-top: 3rem;
    }
    .gallery-title {
        font-family: 'Cormorant Garamond', 'Georgia', serif;
        font-size: 2.6rem;
        font-weight: 300;
        text-align: center;
        border-bottom: 1px solid #1a1a1a;
        padding-bottom: 0.6rem;
        margin-bottom: 2rem;
    }
    .slider-desc {
        font-family: 'Cormorant Garamond', 'Georgia', serif;
        font-size: 0.95rem;
        font-style: italic;
        color: #a0a09a;
    }
    #MainMenu {visibility: hidden;}
    footer {visibility: hidden;}
    header {visibility: hidden;}
</style>
""", unsafe_allow_html=True)


@st.cache_data(show_spinner=False)
def _measure(sources: tuple[str, ...]) -> dict[str, float]:
    return measure_ratios(sources)


# -- Title -------------------------------------------------------------
st.markdown(
    '<div class="gallery-title">Mosaic Collage</div>',
    unsafe_allow_html=True,
)

# -- Controls ----------------------------------------------------------
sources_text = st.text_area(
    "Images (comma or newline separated)", _SAMPLE_IMAGES.replace(",", "\n"), height=160,
)
images = parse_image_list(sources_text.replace("\n", ","))

ctrl1, ctrl2, ctrl3 = st.columns(3)
with ctrl1:
    width = st.slider("Width (px)", 200, 1400, int(_DEFAULTS.width), step=10)
with ctrl2:
    height = st.slider("Height (px)", 200, 1200, int(_DEFAULTS.height), step=10)
with ctrl3:
    gap = st.slider("Gap (px)", 0.0, 40.0, float(_DEFAULTS.gap), step=1.0)

stretch = st.checkbox("Stretch row gaps to fill the height", value=_DEFAULTS.stretch_rows)
probe = st.checkbox("Measure images without a size in the URL", value=True)
st.markdown(
    '<div class="slider-desc">'
    "Rows keep every image at the same height and span the full width. "
    "When the rows are taller than the box, the whole block is shrunk "
    "uniformly and centered."
    "</div>",
    unsafe_allow_html=True,
)

st.markdown("---")

if images:
    cfg = CollageConfig(width=width, height=height, gap=gap, stretch_rows=stretch)
    ratios: dict[str, float] = {}
    if probe:
        unknown = tuple(src for src in dict.fromkeys(images) if ratio_from_url(src) is None)
        if unknown:
            ratios = _measure(unknown)

    t0 = time.perf_counter()
    layout = compute_layout(
        images, ratios, cfg.width, cfg.height, cfg.gap,
        stretch_rows=cfg.stretch_rows,
    )
    elapsed = time.perf_counter() - t0

    components.html(render_stage(layout, cfg), height=int(height) + 20, scrolling=False)

    rows = len({p.y for p in layout.items})
    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Images", f"{len(images)}")
    m2.metric("Rows", f"{rows}")
    m3.metric("Scale", f"{layout.scale:.3f}")
    m4.metric("Time", f"{elapsed * 1000:.2f} ms")

    with st.expander("Geometry"):
        st.json(layout.to_dict())
else:
    st.markdown(
        '<p style="font-family: Cormorant Garamond, Georgia, serif; '
        "color: #bbb; font-size: 1rem; font-style: italic; margin-top: 2rem;\">"
        "Add at least one image to begin.</p>",
        unsafe_allow_html=True,
    )
