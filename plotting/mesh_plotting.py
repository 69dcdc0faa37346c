import random

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Patch
from mpl_toolkits.mplot3d.art3d import Line3DCollection, Poly3DCollection

from data_types import EditableMesh


def _new_axes(ax, figsize):
    if ax is None:
        fig = plt.figure(figsize=figsize)
        ax = fig.add_subplot(111, projection='3d')
    else:
        fig = ax.figure
    return fig, ax


def _face_polygons(mesh: EditableMesh) -> list[np.ndarray]:
    return [mesh.face_points(i) for i in range(mesh.face_count)]


def _finish_axes(ax, mesh: EditableMesh, title: str):
    ax.set_title(title)
    ax.set_xlabel("X")
    ax.set_ylabel("Y")
    ax.set_zlabel("Z")
    ax.set_box_aspect([1, 1, 1])

    bounds = mesh.bounding_box()
    if bounds is None:
        return
    low, high = bounds
    # Add a small buffer for better visualization
    buffer = max(float(np.max(high - low)) * 0.05, 1e-3)
    ax.set_xlim(low[0] - buffer, high[0] + buffer)
    ax.set_ylim(low[1] - buffer, high[1] + buffer)
    ax.set_zlim(low[2] - buffer, high[2] + buffer)


def plot_mesh(mesh: EditableMesh, title="3D Mesh", figsize=(12, 10), ax=None, alpha=0.7,
              face_color='tab:blue', edge_color='black'):
    """Draw every face as a polygon (n-gons are not triangulated)."""
    fig, ax = _new_axes(ax, figsize)
    polygons = _face_polygons(mesh)
    if polygons:
        collection = Poly3DCollection(polygons, alpha=alpha, linewidths=0.5)
        collection.set_facecolor(face_color)
        collection.set_edgecolor(edge_color)
        ax.add_collection3d(collection)
    _finish_axes(ax, mesh, title)
    return fig, ax


def plot_mesh_regions(mesh: EditableMesh, regions: list[list[int]], title="Mesh Regions", figsize=(12, 10),
                      region_colors=None, edge_color='black', edge_width=0.3,
                      alpha=0.7, with_edges=True, ax=None, region_labels=None):
    """
    Plots a mesh with groups of faces colored distinctly.

    Parameters
    ----------
    mesh : EditableMesh
        The mesh to draw.

    regions : list of list of int
        Face ids for each region, e.g. connected components or boolean classifications.
        Faces in no region are drawn light gray.

    region_colors : list of colors, optional
        One color per region. If None, colors are generated automatically.

    region_labels : list of str, optional
        Legend labels. If None, "Region {i}" is used.

    Returns
    -------
    fig : matplotlib.figure.Figure
    ax : matplotlib.axes.Axes
    """
    fig, ax = _new_axes(ax, figsize)

    if region_colors is None:
        cmap = plt.get_cmap('tab20')
        region_colors = [cmap(i % 20) for i in range(len(regions))]
        # More than 20 regions get random colors so neighbours stay distinguishable
        for i in range(20, len(regions)):
            region_colors[i] = (random.random(), random.random(), random.random(), 1.0)
    if len(region_colors) < len(regions):
        raise ValueError(f"Not enough colors provided. Need at least {len(regions)} colors.")
    if region_labels is None:
        region_labels = [f"Region {i}" for i in range(len(regions))]

    face_colors = np.full((mesh.face_count, 4), (0.9, 0.9, 0.9, alpha))
    for i, region in enumerate(regions):
        color = tuple(region_colors[i])[:3]
        for face_idx in region:
            if 0 <= face_idx < mesh.face_count:
                face_colors[face_idx] = color + (alpha,)

    polygons = _face_polygons(mesh)
    if polygons:
        collection = Poly3DCollection(polygons, linewidths=edge_width if with_edges else 0,
                                      edgecolors=edge_color if with_edges else 'none')
        collection.set_facecolor(face_colors)
        ax.add_collection3d(collection)

    legend_elements = [
        Patch(facecolor=region_colors[i], edgecolor=edge_color if with_edges else None, label=region_labels[i])
        for i in range(len(regions))
    ]
    if legend_elements:
        ax.legend(handles=legend_elements, loc='upper right', frameon=True, fancybox=True, framealpha=0.7)

    _finish_axes(ax, mesh, title)
    plt.tight_layout()
    return fig, ax


def plot_mesh_with_highlighted_edges(mesh: EditableMesh, highlighted_edge_indices, title="Mesh with Highlighted Edges",
                                     figsize=(10, 8), highlight_color='red', highlight_width=2,
                                     mesh_alpha=0.4, ax=None):
    """
    Plots a mesh with specific edges (by edge id) drawn on top, e.g. boundary or
    non-manifold edges.
    """
    fig, ax = plot_mesh(mesh, title=title, figsize=figsize, ax=ax, alpha=mesh_alpha)

    lines = []
    for edge_idx in highlighted_edge_indices:
        edge = mesh.get_edge(edge_idx)
        if edge is None:
            continue
        lines.append([mesh.vertices[edge.v1].position, mesh.vertices[edge.v2].position])
    if lines:
        ax.add_collection3d(Line3DCollection(lines, colors=highlight_color, linewidths=highlight_width, zorder=10))

    # Adjust view angle slightly to make line visibility more consistent
    ax.view_init(elev=30, azim=45)
    return fig, ax


def plot_boundary_loops(mesh: EditableMesh, loops: list[list[int]], title="Boundary Loops", figsize=(10, 8),
                        ax=None, mesh_alpha=0.3, line_width=2):
    """Plots each boundary loop (ordered vertex ids) as a closed polyline in its own color."""
    fig, ax = plot_mesh(mesh, title=title, figsize=figsize, ax=ax, alpha=mesh_alpha)
    cmap = plt.get_cmap('tab10')
    for i, loop in enumerate(loops):
        points = np.array([mesh.vertices[v].position for v in list(loop) + [loop[0]]])
        ax.plot(points[:, 0], points[:, 1], points[:, 2], color=cmap(i % 10), linewidth=line_width,
                label=f"Loop {i} ({len(loop)} vertices)")
    if loops:
        ax.legend(loc='upper right')
    return fig, ax
