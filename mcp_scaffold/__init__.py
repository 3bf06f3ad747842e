"""mcp-scaffold: generate FastMCP TypeScript server projects from templates."""

__version__ = "1.0.0"
