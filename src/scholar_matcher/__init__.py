"""Scholar Matcher: research-interest matching over academic publication profiles."""

__version__ = "0.1.0"
