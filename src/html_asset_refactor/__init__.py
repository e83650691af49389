"""Extract inline CSS and JavaScript from static HTML into external files."""

__version__ = "0.1.0"
