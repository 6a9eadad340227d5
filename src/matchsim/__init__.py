"\"\"\"Decision-evaluation core for a single-session matchmaking simulation.\"\"\""

__version__ = "0.1.0"
