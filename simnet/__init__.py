"""
SIMNET - Similarity Networks of per-entity time series

Turns per-entity yearly series (one value per entity per year) into a
correlation graph and lays it out with a force-directed simulation that the
user can drag, pin and filter.

Architecture:
    - fetch: Record and category loading (delimited text / GeoJSON -> records)
    - core: Data model, Series Index, render scales
    - engines: Correlation Graph Builder, Layout Engine
    - control: Interaction Overlay (pure reducer + visibility predicates)
    - pipeline: NetworkSession wiring everything together

Quick Start:
    from simnet.fetch import load_records, RegionLookup
    from simnet.pipeline import NetworkSession

    records = load_records("data.csv").records
    regions = RegionLookup().fetch()

    session = NetworkSession(records, regions)
    graph = session.graph
    print(graph.summary())

    session.start_layout(on_frame=lambda snap: print(snap.frame))
"""

__version__ = "0.1.0"
