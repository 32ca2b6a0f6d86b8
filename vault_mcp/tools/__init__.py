"""
MCP Tools Package

All tools in this directory are auto-discovered by registry.py.
Each tool inherits from MCPTool; handlers receive the capability provider
as their first argument and must not touch the host any other way.
"""

# Tools are auto-discovered, no explicit imports needed
