"""stackgraph - declarative resource graphs, deployment plans and executors."""

__version__ = "0.1.0"
