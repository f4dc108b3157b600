"""Synapse Graph: interactive knowledge-note graphs.

Builds value, note and cluster views from saved notes and their links,
lays them out with a force-directed simulation, and renders them frame by
frame with hover focus, dragging and click activation.
"""

from synapse_graph.builders import build_cluster_view, build_graph, build_note_view, build_value_view
from synapse_graph.clustering import ClusteringEngine
from synapse_graph.config import GraphSettings
from synapse_graph.host import GraphHost
from synapse_graph.interaction import InteractionController, NodeActivation
from synapse_graph.keywords import KeywordExtractor
from synapse_graph.layout import LayoutEngine, PositionMemory
from synapse_graph.models import GraphEdge, GraphModel, GraphNode, Link, Note, ViewMode
from synapse_graph.render import RenderLoop
from synapse_graph.scheduler import StepScheduler
from synapse_graph.store import NoteStore
from synapse_graph.surface import FigureSurface

__version__ = "0.1.0"
__all__ = [
    "GraphHost",
    "NoteStore",
    "Note",
    "Link",
    "ViewMode",
    "GraphModel",
    "GraphNode",
    "GraphEdge",
    "GraphSettings",
    "KeywordExtractor",
    "ClusteringEngine",
    "build_graph",
    "build_value_view",
    "build_note_view",
    "build_cluster_view",
    "LayoutEngine",
    "PositionMemory",
    "RenderLoop",
    "StepScheduler",
    "FigureSurface",
    "InteractionController",
    "NodeActivation",
]
