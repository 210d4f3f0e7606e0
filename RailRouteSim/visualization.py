"""
RailRouteSim Visualization Module

Plotly figures for a network map, its shortest routes and the turn by turn
schedule produced by the simulator.

Features:
- Network map with stations at declared coordinates and routes overlaid
- Train timeline (route progress per turn)
- Gantt chart of departure to arrival per train with wait counts
"""

import pandas as pd
import plotly.graph_objects as go

from network import station_positions
from utils import format_route, short_train

TRAIN_COLORS = [
    "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4", "#FFEAA7",
    "#DDA0DD", "#98D8C8", "#F7DC6F", "#BB8FCE", "#85C1E9",
    "#F8C471", "#82E0AA", "#AED6F1", "#D7DBDD", "#F9E79F"
]


def _empty_figure(title):
    fig = go.Figure()
    fig.update_layout(title=title)
    return fig


def enhance_for_hd(fig, scale=1.25):
    """Upscale figure fonts and canvas for high-definition presentation."""
    if fig is None:
        return fig
    base_w = fig.layout.width or 1200
    base_h = fig.layout.height or 600
    fig.update_layout(width=int(base_w * scale), height=int(base_h * scale))
    current_font = (fig.layout.font.size if fig.layout.font and fig.layout.font.size else 12)
    fig.update_layout(font=dict(size=int(current_font * scale)))
    return fig


def build_records_from_schedule(sim):
    """
    One row per event: the start at turn 0, every move, the first turn of
    every logged wait spell and, for trains short of the end, their position
    at the last recorded turn. Plot with a step line to fill the gaps.

    Columns: train, turn, station, index (position on its route), action
    (``start``, ``move``, ``wait`` or ``stranded``).
    """
    last_turn = len(sim.turns)
    recs = []
    for tid, st in sim.state.items():
        route = st["route"]
        idx = 0
        recs.append({"train": tid, "turn": 0, "station": route[0], "index": 0, "action": "start"})
        for rec in st["log"]:
            if rec[3] == "move":
                idx += 1
                recs.append({"train": tid, "turn": rec[0], "station": rec[2], "index": idx, "action": "move"})
            elif rec[3].startswith("wait"):
                recs.append({"train": tid, "turn": rec[0], "station": rec[1], "index": idx, "action": "wait"})
        if idx < len(route) - 1 and recs[-1]["turn"] < last_turn:
            recs.append({"train": tid, "turn": last_turn, "station": route[idx], "index": idx,
                         "action": "stranded"})
    if not recs:
        return pd.DataFrame()
    df = pd.DataFrame(recs)
    return df.sort_values(["train", "turn"], kind="stable").reset_index(drop=True)


def plot_network_map(G, routes=None, highlight=None):
    """
    Schematic map: grey tracks, station markers, shortest routes as coloured
    overlays. ``highlight`` is an optional (start, end) pair to emphasise.
    """
    if G is None or G.number_of_nodes() == 0:
        return _empty_figure("No network loaded")
    pos = station_positions(G)
    fig = go.Figure()

    for a, b in sorted(tuple(sorted(e)) for e in G.edges):
        (x0, y0), (x1, y1) = pos[a], pos[b]
        fig.add_trace(go.Scatter(
            x=[x0, x1], y=[y0, y1], mode="lines",
            line=dict(color="#BDC3C7", width=6),
            hoverinfo="skip", showlegend=False,
        ))

    for i, route in enumerate(routes or []):
        color = TRAIN_COLORS[i % len(TRAIN_COLORS)]
        fig.add_trace(go.Scatter(
            x=[pos[n][0] for n in route], y=[pos[n][1] for n in route],
            mode="lines", line=dict(color=color, width=3, dash="dot"),
            name=f"Route {i + 1}",
            hovertemplate=f"<b>Route {i + 1}</b><br>{format_route(route)}<extra></extra>",
        ))

    names = sorted(G.nodes)
    ends = set(highlight or ())
    fig.add_trace(go.Scatter(
        x=[pos[n][0] for n in names], y=[pos[n][1] for n in names],
        mode="markers+text", text=names, textposition="top center",
        marker=dict(
            size=[18 if n in ends else 12 for n in names],
            color=["#E74C3C" if n in ends else "#F1C40F" for n in names],
            line=dict(width=2, color="#2C3E50"),
        ),
        hovertemplate="%{text}<extra></extra>",
        name="Stations",
    ))

    fig.update_layout(
        title="Network Map",
        xaxis=dict(visible=False), yaxis=dict(visible=False, scaleanchor="x"),
        plot_bgcolor="white", height=600,
    )
    return fig


def plot_train_timeline(sim):
    """Route progress (station index) against turn for every train."""
    if sim is None or not sim.turns:
        return _empty_figure("No train movements yet")
    df = build_records_from_schedule(sim)
    if df.empty:
        return _empty_figure("No train movements yet")

    fig = go.Figure()
    for i, (tid, sub) in enumerate(df.groupby("train", sort=True)):
        color = TRAIN_COLORS[i % len(TRAIN_COLORS)]
        fig.add_trace(go.Scatter(
            x=sub["turn"], y=sub["index"], mode="lines+markers",
            line=dict(color=color, width=2, shape="hv"),
            marker=dict(size=8, symbol=["circle" if a != "wait" else "x" for a in sub["action"]]),
            name=short_train(tid),
            customdata=sub[["station", "action"]].values,
            hovertemplate=(f"<b>{short_train(tid)}</b><br>Turn %{{x}}<br>"
                           "Station: %{customdata[0]}<br>%{customdata[1]}<extra></extra>"),
        ))
    fig.update_layout(
        title="Train Timeline",
        xaxis=dict(title="Turn", dtick=1),
        yaxis=dict(title="Stations travelled", dtick=1),
        height=500,
    )
    return fig


def plot_gantt_chart(sim):
    """Departure to arrival bar per train; stranded trains are drawn in red."""
    if sim is None or not sim.turns:
        return _empty_figure("No Gantt data")
    kpis = sim.compute_kpis()
    stranded = set(kpis["stranded"])
    last_turn = kpis["turns"]

    fig = go.Figure()
    for i, (tid, st) in enumerate(sorted(sim.state.items())):
        departed = next((rec[0] for rec in st["log"] if rec[3] == "move"), None)
        start = departed - 1 if departed is not None else last_turn
        end = st["arrival_turn"] if st["arrival_turn"] is not None else last_turn
        color = "#DC143C" if tid in stranded else TRAIN_COLORS[i % len(TRAIN_COLORS)]
        hover_text = (
            f"<b>{short_train(tid)}</b><br>"
            f"Route: {format_route(st['route'])}<br>"
            f"Departed: turn {departed if departed is not None else '-'}<br>"
            f"Arrived: {'turn ' + str(end) if tid not in stranded else 'stranded'}<br>"
            f"Waits: {st['waits']} turn(s)"
        )
        fig.add_trace(go.Bar(
            x=[max(end - start, 0)], y=[short_train(tid)], base=start, orientation="h",
            marker=dict(color=color, line=dict(width=2, color="#2C3E50")),
            name=short_train(tid), showlegend=False,
            hovertemplate=hover_text + "<extra></extra>",
        ))
    fig.update_layout(
        title=f"Train Journeys ({last_turn} turn(s))",
        xaxis=dict(title="Turn", dtick=1),
        yaxis=dict(autorange="reversed"),
        barmode="overlay", height=max(300, 40 * sim.num_trains),
    )
    return fig
