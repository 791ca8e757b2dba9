"""Entry point for the Protonmail MCP server."""
from .server import main

if __name__ == "__main__":
    main()
