"""plannersync - offline action queue for the plann.er trip planner."""

__version__ = "0.1.0"
