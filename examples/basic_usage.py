"""Basic usage example for Synapse Graph.

Demonstrates building all three views from the demo notes, laying them
out headlessly, focusing and clicking nodes, and reacting to store changes.

Run this script; no display is required. Set SYNAPSE_GRAPH_SEED for a
reproducible layout.
"""

import sys
from pathlib import Path

# Add project root to path for imports without pip install
sys.path.insert(0, str(Path(__file__).parent.parent))

from synapse_graph import FigureSurface, GraphHost, GraphSettings, NoteStore, ViewMode


def main():
    """Run the basic usage example."""
    store = NoteStore.demo()
    surface = FigureSurface()
    host = GraphHost(
        store,
        surface=surface,
        settings=GraphSettings.from_env(),
        on_node_activated=lambda activation: print(f"  -> {activation.kind.value}: {activation.node_id}"),
        on_deselect=lambda: print("  -> deselected"),
    )
    host.mount(900, 600)

    for mode in ViewMode:
        host.set_view_mode(mode)
        frames = host.run_until_idle()

        print("=" * 60)
        print(f"{mode.label.upper()}: {mode.hint}")
        print("=" * 60)
        print(f"{len(host.model.nodes)} nodes, {len(host.model.edges)} edges, settled after {frames} frames\n")

        for node in host.model.nodes:
            x, y = host.layout.position(node.id)
            print(f"  [{node.kind.value:7}] {node.label[:40]:40} ({x:6.1f}, {y:6.1f})")
        print()

        for edge in host.model.edges[:5]:
            print(f"  {edge.source} --{edge.label or edge.kind.value}--> {edge.target}")
        if len(host.model.edges) > 5:
            print(f"  ... {len(host.model.edges) - 5} more edges")
        print()

        # Click the first node where it was drawn
        first = host.model.nodes[0]
        x, y = host.layout.position(first.id)
        print(f"Clicking {first.label!r}:")
        activation = host.interaction.click(x, y)
        if activation is not None and hasattr(activation.payload, "lines"):
            for line in activation.payload.lines:
                print(f"     {line}")
        print()

    print("=" * 60)
    print("FOCUS")
    print("=" * 60)
    host.set_view_mode(ViewMode.NOTE)
    host.run_until_idle()
    target = host.model.nodes[0]
    host.render.set_hover(target.id)
    frames = host.run_until_idle()
    print(f"Hovering {target.label!r} settled after {frames} frames")
    for node in host.model.nodes:
        print(f"  {node.label[:40]:40} focus={host.render.focus.nodes[node.id]:.2f}")
    host.render.set_hover(None)
    host.run_until_idle()
    print()

    print("=" * 60)
    print("STORE CHANGES")
    print("=" * 60)
    note = store.add_note({
        "title": "Attention Mechanisms in Transformer Models",
        "type": "concept",
        "summary": "How attention lets transformer models weigh tokens.",
        "structuredData": {"Tags": ["Transformer"], "Year": "2017"},
    })
    added, removed = store.update_auto_links(note.id)
    host.run_until_idle()
    print(f"Added note {note.id} with {added} automatic links (removed {removed})")
    print(f"Note graph now has {len(host.model.nodes)} nodes and {len(host.model.edges)} edges")

    store.delete_note(note.id)
    host.run_until_idle()
    print(f"Deleted note {note.id}; {len(host.model.nodes)} nodes remain")
    print(f"Remembered positions: {len(host.memory)}")

    host.unmount()
    print(f"\nLast frame: {len(surface.frame.circles)} nodes drawn, {surface.frames_presented} frames presented")


if __name__ == "__main__":
    main()
