"""
Thematic maps of HOLC grades over the county boundary.

Two renderings of the same layers and colors: a static PNG for the report and
an interactive Folium map (pan/zoom, layer control, tooltips).
"""

from pathlib import Path
from typing import Dict, Optional, Tuple

import folium
import geopandas as gpd
import matplotlib.pyplot as plt
from loguru import logger
from matplotlib.patches import Patch

from ..processing.crs import reproject
from ..processing.schemas import HOLC_GRADES
from .charts import GRADE_COLORS

WEB_CRS = "EPSG:4326"


def county_outline(county: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Dissolve county units into one boundary polygon."""
    if len(county) == 0:
        return gpd.GeoDataFrame(geometry=[], crs=county.crs)
    return gpd.GeoDataFrame(geometry=[county.geometry.union_all()], crs=county.crs)


def plot_grade_map(
    grades: gpd.GeoDataFrame,
    county: gpd.GeoDataFrame,
    output_path: Path,
    title: Optional[str] = None,
    colors: Optional[Dict[str, str]] = None,
    figsize: Tuple[float, float] = (10, 10),
    dpi: int = 200,
) -> Path:
    """
    Save a static map of grade polygons over the county outline.

    Args:
        grades: Cleaned grade polygons (column "grade")
        county: County subset of indicator units
        output_path: PNG destination
        title: Map title
        colors: Grade to fill color mapping
        figsize: Figure size in inches
        dpi: Output resolution

    Returns:
        Path of the written PNG
    """
    colors = {**GRADE_COLORS, **(colors or {})}
    logger.info("🗺️ Creating static grade map...")

    fig, ax = plt.subplots(figsize=figsize)
    outline = county_outline(county)
    if len(outline):
        outline.boundary.plot(ax=ax, color="#333333", linewidth=0.6)
    if len(grades):
        grades.plot(
            ax=ax,
            color=grades["grade"].map(colors).fillna("#cccccc").tolist(),
            edgecolor="#444444",
            linewidth=0.2,
        )

    handles = [
        Patch(facecolor=colors[grade], edgecolor="#444444", label=f"Grade {grade}")
        for grade in HOLC_GRADES
    ]
    ax.legend(handles=handles, title="HOLC grade", loc="lower left", frameon=True)
    ax.set_axis_off()
    ax.set_aspect("equal")
    if title:
        fig.suptitle(title, fontsize=16, fontweight="bold", x=0.02, y=0.95, ha="left", va="top")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, bbox_inches="tight", dpi=dpi, facecolor="white", pad_inches=0.02)
    plt.close(fig)
    logger.success(f"  ✅ Static map saved: {output_path}")
    return output_path


def create_interactive_grade_map(
    grades: gpd.GeoDataFrame,
    county: gpd.GeoDataFrame,
    output_path: Path,
    title: Optional[str] = None,
    colors: Optional[Dict[str, str]] = None,
    tiles: str = "CartoDB Positron",
    zoom_start: int = 10,
) -> Path:
    """Save an interactive Folium map of grade polygons and the county outline."""
    colors = {**GRADE_COLORS, **(colors or {})}
    logger.info("🗺️ Creating interactive grade map...")

    grades = reproject(grades, WEB_CRS, "grade polygons")
    outline = reproject(county_outline(county), WEB_CRS, "county outline")

    bounds_source = outline if len(outline) else grades
    if len(bounds_source):
        minx, miny, maxx, maxy = bounds_source.total_bounds
        center = [(miny + maxy) / 2, (minx + maxx) / 2]
    else:
        center = [0.0, 0.0]
    logger.debug(f"  📍 Map center: {center[0]:.4f}, {center[1]:.4f}")

    m = folium.Map(location=center, zoom_start=zoom_start, tiles=tiles, prefer_canvas=True)

    if len(outline):
        folium.GeoJson(
            data=outline.__geo_interface__,
            name="County boundary",
            style_function=lambda feature: {
                "color": "#333333",
                "weight": 2,
                "fillOpacity": 0,
            },
        ).add_to(m)

    if len(grades):
        tooltip_fields = [col for col in ("grade", "city") if col in grades.columns]
        folium.GeoJson(
            data=grades[tooltip_fields + [grades.geometry.name]].__geo_interface__,
            name="HOLC grades",
            style_function=lambda feature: {
                "fillColor": colors.get(feature["properties"].get("grade"), "#cccccc"),
                "color": "#444444",
                "weight": 0.5,
                "fillOpacity": 0.7,
            },
            tooltip=folium.GeoJsonTooltip(
                fields=tooltip_fields,
                aliases=[f"{field.title()}:" for field in tooltip_fields],
                localize=True,
                sticky=False,
            ),
        ).add_to(m)

    folium.LayerControl(collapsed=False).add_to(m)

    if title:
        title_html = f"""
        <h3 align="center" style="font-size:20px; color: #333333; margin-top:10px;">
        <b>{title}</b>
        </h3>
        """
        m.get_root().html.add_child(folium.Element(title_html))

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    m.save(str(output_path))
    logger.success(f"  ✅ Interactive map saved: {output_path}")
    return output_path
