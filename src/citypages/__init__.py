"""citypages — city and neighborhood landing-page content generation."""

__version__ = "1.0.0"
