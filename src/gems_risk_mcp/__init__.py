#!/usr/bin/env python
"""Entry point for GEMs Credit Risk MCP Server"""

from .server import main

if __name__ == "__main__":
    main()
