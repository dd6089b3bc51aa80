"""blog-sync: publish local blog posts to a remote service exactly once."""

__version__ = "1.0.0"
