"""Node daemon building blocks: a sandboxed filesystem, a Panel API client, activity records, progress and console logging."""

__version__ = "0.1.0"