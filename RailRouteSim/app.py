"""
RailRouteSim - Shortest Route Train Scheduler Dashboard

Web front end over the same core used by the command line: edit or load a
network map, pick start and end stations and a train count, and inspect the
resulting turn by turn schedule.

Features:
- Network map editor with validation feedback
- Shortest route overlay on the network map
- Schedule listing identical to the command line output
- Train timeline and journey Gantt chart
- Schedule download as text
"""

import base64
import logging

import dash
from dash import dcc, html, Input, Output, State
import dash_bootstrap_components as dbc

from config import settings
from errors import RailRouteError, NoRouteError, InvalidArgumentError, InvalidNetworkError
from network import parse_network_text, has_station
from routing import find_all_shortest_paths, shortest_path_length
from simulation import Simulator
from visualization import (
    plot_network_map,
    plot_train_timeline,
    plot_gantt_chart,
    enhance_for_hd,
)
from utils import format_route, parse_positive_int, short_train

logger = logging.getLogger(__name__)

SAMPLE_MAP = """stations:
a,1,2
b,2,3
c,3,2
d,2,1
e,4,2

connections:
a-b
b-c
a-d
d-c
c-e
"""

GRAPH_CONFIG = {
    "displaylogo": False,
    "toImageButtonOptions": {"format": "png", "scale": 3},
    "modeBarButtonsToRemove": ["lasso2d", "select2d", "autoScale2d"]
}


def load_initial_map():
    """Map text shown when the dashboard opens."""
    if settings.DEFAULT_MAP:
        try:
            with open(settings.DEFAULT_MAP, encoding="utf-8") as fh:
                return fh.read()
        except OSError as exc:
            logger.warning("Could not read RAILROUTE_DEFAULT_MAP %s: %s", settings.DEFAULT_MAP, exc)
    return SAMPLE_MAP


def station_options(map_text):
    try:
        G = parse_network_text(map_text or "")
    except RailRouteError:
        return []
    return [{"label": n, "value": n} for n in sorted(G.nodes)]


def decode_upload(contents):
    """Map text from a dcc.Upload data URL; the file must be UTF-8 like on the command line."""
    try:
        _, encoded = contents.split(",", 1)
        return base64.b64decode(encoded, validate=True).decode("utf-8")
    except (ValueError, UnicodeDecodeError) as exc:
        logger.info("Rejected uploaded map: %s", exc)
        raise InvalidNetworkError("could not open network map file") from exc


def run_scenario(map_text, start, end, num_trains):
    """
    Validate inputs like the command line does and run one simulation.

    Returns:
        tuple: (graph, routes, simulator)
    """
    count = parse_positive_int(num_trains)
    if count > settings.MAX_TRAINS:
        raise InvalidArgumentError(f"number of trains is limited to {settings.MAX_TRAINS} in the dashboard.")
    G = parse_network_text(map_text or "")
    if not start or not end:
        raise InvalidArgumentError("choose a start and an end station.")
    if start == end:
        raise InvalidArgumentError("start and end station are the same.")
    if not has_station(G, start):
        raise InvalidArgumentError("start station does not exist.")
    if not has_station(G, end):
        raise InvalidArgumentError("end station does not exist.")
    routes = find_all_shortest_paths(G, start, end)
    if not routes:
        raise NoRouteError()
    sim = Simulator(routes, count, end=end)
    sim.run()
    return G, routes, sim


def generate_summary(routes, sim):
    kpis = sim.compute_kpis()
    items = [
        html.P(f"🛤️ Shortest routes: {len(routes)} of {shortest_path_length(routes)} track(s)"),
        html.P(f"⏱️ Turns: {kpis['turns']}"),
        html.P(f"✅ Arrived: {kpis['arrived']}/{sim.num_trains}"),
        html.P(f"⏳ Average wait: {kpis['avg_wait']:.2f} turn(s) | Longest: {kpis['max_wait']}"),
    ]
    if kpis["stranded"]:
        items.append(html.P(
            f"🚫 Stranded: {', '.join(short_train(t) for t in kpis['stranded'])}",
            style={"color": "#E74C3C", "fontWeight": "bold"},
        ))
    items.append(html.Hr())
    items.append(html.H6("Routes"))
    items.extend(html.Div(f"{i + 1}. {format_route(r)}") for i, r in enumerate(routes))
    return items


settings.configure_logging()
print("🌐 Initializing RailRouteSim dashboard...")
app = dash.Dash(
    __name__,
    external_stylesheets=[dbc.themes.BOOTSTRAP],
    title="RailRouteSim - Shortest Route Scheduler",
    meta_tags=[{"name": "viewport", "content": "width=device-width, initial-scale=1"}],
)
server = app.server

_initial_map = load_initial_map()

app.layout = dbc.Container([
    html.H1("🚂 RailRouteSim — Shortest Route Scheduler",
            className="text-center mb-4",
            style={"color": "#2C3E50", "fontWeight": "bold"}),
    dbc.Row([
        dbc.Col([
            dbc.Card([
                dbc.CardBody([
                    html.H5("🗺️ Network Map", className="card-title mb-3"),
                    dcc.Upload(
                        id="map-upload",
                        children=dbc.Button("Load map file", color="secondary", size="sm"),
                        className="mb-2",
                    ),
                    dcc.Textarea(id="map-text", value=_initial_map,
                                 style={"width": "100%", "height": "320px", "fontFamily": "monospace"}),
                    html.Div(id="upload-error", className="mt-2"),
                ])
            ])
        ], width=5),
        dbc.Col([
            dbc.Card([
                dbc.CardBody([
                    html.H5("🎮 Scenario", className="card-title mb-3"),
                    dbc.Label("Start station", className="fw-bold"),
                    dcc.Dropdown(id="start-station", options=station_options(_initial_map), value="a"),
                    dbc.Label("End station", className="fw-bold mt-2"),
                    dcc.Dropdown(id="end-station", options=station_options(_initial_map), value="e"),
                    dbc.Label("Number of trains", className="fw-bold mt-2"),
                    dbc.Input(id="num-trains", type="number", min=1, max=settings.MAX_TRAINS, value=4),
                    dbc.Button("Run ▶", id="run-btn", color="success", size="lg", className="mt-3"),
                    html.Div(id="error-box", className="mt-3"),
                ])
            ])
        ], width=3),
        dbc.Col([
            dbc.Card([
                dbc.CardBody([
                    html.H5("📊 Summary", className="card-title mb-3"),
                    html.Div(id="summary"),
                ])
            ])
        ], width=4),
    ], className="mb-4"),
    dcc.Graph(id="network-map-graph", config=GRAPH_CONFIG),
    dcc.Graph(id="timeline-graph", config=GRAPH_CONFIG),
    dcc.Graph(id="gantt-graph", config=GRAPH_CONFIG),
    dbc.Card([
        dbc.CardHeader(html.H4("🧾 Schedule", className="mb-0", style={"color": "#34495E"})),
        dbc.CardBody([
            dbc.Button("Download", id="download-btn", color="secondary", size="sm", className="mb-2"),
            dcc.Download(id="download-schedule"),
            html.Pre(id="schedule", style={
                "height": "300px",
                "overflow-y": "auto",
                "border": "2px solid #34495E",
                "padding": "15px",
                "background-color": "#F8F9FA",
                "border-radius": "8px",
            }),
        ])
    ], className="mb-4"),
    dbc.Checklist(
        options=[{"label": " High-Definition Mode", "value": "hd"}],
        value=[], id="hd-mode", switch=True,
    ),
], fluid=True)


@app.callback(
    Output("map-text", "value"),
    Output("upload-error", "children"),
    Input("map-upload", "contents"),
    prevent_initial_call=True,
)
def upload_map(contents):
    try:
        return decode_upload(contents), None
    except InvalidNetworkError as exc:
        return dash.no_update, dbc.Alert(f"Error: {exc}", color="danger")


@app.callback(
    Output("start-station", "options"),
    Output("end-station", "options"),
    Input("map-text", "value"),
)
def refresh_stations(map_text):
    options = station_options(map_text)
    return options, options


@app.callback(
    Output("network-map-graph", "figure"),
    Output("timeline-graph", "figure"),
    Output("gantt-graph", "figure"),
    Output("schedule", "children"),
    Output("summary", "children"),
    Output("error-box", "children"),
    Input("run-btn", "n_clicks"),
    Input("hd-mode", "value"),
    State("map-text", "value"),
    State("start-station", "value"),
    State("end-station", "value"),
    State("num-trains", "value"),
)
def control(run_clicks, hd_mode, map_text, start, end, num_trains):
    try:
        G, routes, sim = run_scenario(map_text, start, end, num_trains)
    except RailRouteError as exc:
        logger.info("Scenario rejected: %s", exc)
        try:
            G = parse_network_text(map_text or "")
        except RailRouteError:
            G = None
        return (plot_network_map(G), plot_train_timeline(None), plot_gantt_chart(None),
                "", [], dbc.Alert(f"Error: {exc}", color="danger"))

    figs = [
        plot_network_map(G, routes, highlight=(start, end)),
        plot_train_timeline(sim),
        plot_gantt_chart(sim),
    ]
    if isinstance(hd_mode, list) and "hd" in hd_mode:
        figs = [enhance_for_hd(f) for f in figs]
    schedule = "\n".join(sim.schedule())
    return figs[0], figs[1], figs[2], schedule, generate_summary(routes, sim), None


@app.callback(
    Output("download-schedule", "data"),
    Input("download-btn", "n_clicks"),
    State("schedule", "children"),
    prevent_initial_call=True
)
def download_schedule(n_clicks, schedule):
    return dict(content=(schedule or "") + "\n", filename="schedule.txt")


if __name__ == "__main__":
    print("📊 Dashboard will be available at: http://%s:%d" % (settings.HOST, settings.PORT))
    app.run(debug=settings.DEBUG, host=settings.HOST, port=settings.PORT)
