"""reelgraph: incremental execution of node-graph video pipelines."""

__version__ = "0.1.0"
