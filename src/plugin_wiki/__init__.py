"""Plugin wiki: landing page, documentation browser and admin CMS."""

__version__ = "0.1.0"
