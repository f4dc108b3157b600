"""Streamlit UI for browsing notes as an interactive graph.

Run with: streamlit run browser.py

Features:
- Value map, note graph and keyword cluster views
- Click a node to open its note, value associations or cluster summary
- Focus a node to highlight its neighborhood
- Add notes and links, delete notes
- Notes table
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

import pandas as pd
import streamlit as st
from synapse_graph.config import GraphSettings
from synapse_graph.host import GraphHost
from synapse_graph.interaction import ActivationKind
from synapse_graph.models import ViewMode
from synapse_graph.store import NoteStore
from synapse_graph.styling import EDGE_COLORS, NODE_COLORS
from synapse_graph.surface import FigureSurface

GRAPH_WIDTH = 1000
GRAPH_HEIGHT = 640

st.set_page_config(
    page_title="Synapse Graph",
    page_icon="🕸️",
    layout="wide",
)

st.title("🕸️ Synapse Graph")


@st.cache_resource
def get_store():
    """Get cached note store seeded with the demo notes."""
    return NoteStore.demo()


def _select(activation):
    st.session_state.selected = activation


def _deselect():
    st.session_state.selected = None


def get_host(store):
    """Get the graph host for this session, mounting it on first use."""
    if "host" not in st.session_state:
        host = GraphHost(
            store,
            surface=FigureSurface(),
            settings=GraphSettings.from_env(seed=42),
            on_node_activated=_select,
            on_deselect=_deselect,
        )
        host.mount(GRAPH_WIDTH, GRAPH_HEIGHT)
        st.session_state.host = host
        st.session_state.selected = None
    return st.session_state.host


def _parse_attributes(text):
    """Parse `key: value` lines, splitting comma-separated values into lists."""
    attributes = {}
    for line in text.splitlines():
        if ":" not in line:
            continue
        key, raw = line.split(":", 1)
        key = key.strip()
        if not key:
            continue
        values = [v.strip() for v in raw.split(",") if v.strip()]
        attributes[key] = values[0] if len(values) == 1 else values
    return attributes


def notes_frame(store):
    """Notes as a table with their link counts."""
    snapshot = store.snapshot()
    degree = {}
    for link in snapshot.links:
        degree[link.source_id] = degree.get(link.source_id, 0) + 1
        degree[link.target_id] = degree.get(link.target_id, 0) + 1
    return pd.DataFrame([
        {
            "ID": note.id,
            "Title": note.display_title,
            "Type": note.kind,
            "URL": note.url,
            "Attributes": len(note.attributes),
            "Links": degree.get(note.id, 0),
        }
        for note in snapshot.notes
    ])


def render_selection(store):
    """Info panel for the last clicked node."""
    activation = st.session_state.get("selected")
    if activation is None:
        st.caption("Click a node to see its details.")
        return

    payload = activation.payload
    if activation.kind == ActivationKind.OPEN_NOTE:
        st.markdown(f"### {payload.display_title}")
        if payload.kind:
            st.caption(payload.kind.upper())
        if payload.summary:
            st.write(payload.summary)
        if payload.url:
            st.markdown(f"[{payload.url}]({payload.url})")
        if payload.attributes:
            st.json(payload.attributes)
        if st.button("🗑️ Delete note", key=f"delete_{payload.id}"):
            store.delete_note(payload.id)
            _deselect()
            st.rerun()
    else:
        st.markdown(f"### {payload.title}")
        for line in payload.lines:
            st.write(line)


def main():
    """Main UI."""
    store = get_store()
    host = get_host(store)

    # Sidebar
    with st.sidebar:
        st.header("⚙️ Controls")

        modes = list(ViewMode)
        mode = st.radio(
            "View",
            modes,
            index=modes.index(host.mode),
            format_func=lambda m: m.label,
        )
        st.caption(mode.hint)
        host.set_view_mode(mode)

        st.divider()

        st.subheader("📊 Statistics")
        st.metric("Notes", len(store))
        st.metric("Nodes", len(host.model.nodes))
        st.metric("Edges", len(host.model.edges))

        st.divider()

        # Add note
        st.subheader("📥 Add Note")
        with st.form("add_note", clear_on_submit=True):
            title = st.text_input("Title")
            kind = st.text_input("Type", value="note")
            url = st.text_input("URL")
            summary = st.text_area("Summary", height=80)
            attributes = st.text_area(
                "Attributes",
                height=100,
                help="One `key: value` per line, commas separate list values",
            )
            auto_link = st.checkbox("Link related notes automatically", value=True)
            if st.form_submit_button("Save", type="primary"):
                if title.strip():
                    note = store.add_note({
                        "title": title.strip(),
                        "type": kind.strip() or "note",
                        "url": url.strip(),
                        "summary": summary.strip(),
                        "structuredData": _parse_attributes(attributes),
                    })
                    if auto_link:
                        added, _ = store.update_auto_links(note.id)
                        st.success(f"✅ Saved with {added} automatic links")
                    else:
                        st.success("✅ Saved")
                else:
                    st.warning("⚠️ Please enter a title")

        # Add link
        st.subheader("🔗 Add Link")
        snapshot = store.snapshot()
        titles = {note.id: note.display_title for note in snapshot.notes}
        if len(titles) >= 2:
            with st.form("add_link", clear_on_submit=True):
                source = st.selectbox("From", list(titles), format_func=titles.get)
                target = st.selectbox("To", list(titles), index=1, format_func=titles.get)
                reason = st.text_input("Reason")
                if st.form_submit_button("Link"):
                    if source == target:
                        st.warning("⚠️ Pick two different notes")
                    elif store.link_between(source, target) is not None:
                        st.warning("⚠️ These notes are already linked")
                    else:
                        store.add_link(source, target, reason.strip())
                        st.success("✅ Linked")
        else:
            st.caption("Save at least two notes to link them.")

        # Legend
        with st.expander("🎨 Legend"):
            for title, colors in (("Nodes", NODE_COLORS), ("Links", EDGE_COLORS)):
                st.markdown(f"**{title}**")
                for kind, color in colors.items():
                    st.markdown(
                        f'<span style="color: {color}; font-weight: bold;">●</span> {kind.value.title()}',
                        unsafe_allow_html=True,
                    )

    tab1, tab2 = st.tabs(["🕸️ Graph", "📋 Notes"])

    with tab1:
        col1, col2 = st.columns([3, 1])

        with col2:
            labels = {node.id: node.label for node in host.model.nodes}
            focus = st.selectbox(
                "Focus node",
                [None, *labels],
                format_func=lambda node_id: "None" if node_id is None else labels[node_id],
            )
            host.render.set_hover(focus)
            st.divider()
            render_selection(store)

        with col1:
            with st.spinner("Laying out graph..."):
                frames = host.run_until_idle()
            if not host.model.nodes:
                st.info("No saved notes yet. Add one from the sidebar!")
            else:
                event = st.plotly_chart(
                    host.surface.figure,
                    use_container_width=True,
                    on_select="rerun",
                    selection_mode="points",
                    key="graph",
                )
                points = event.selection.points if event else []
                point = (points[0]["x"], points[0]["y"]) if points else None
                # Selections persist across reruns, only act on new ones
                if point is not None and point != st.session_state.get("last_point"):
                    st.session_state.last_point = point
                    host.interaction.click(*point)
                    st.rerun()
                st.session_state.last_point = point
                st.caption(f"🖱️ Click a node for details • {frames} frames rendered")

    with tab2:
        df = notes_frame(store)
        st.caption(f"{len(df)} notes")
        if not df.empty:
            st.dataframe(df, use_container_width=True, hide_index=True)


if __name__ == "__main__":
    main()
