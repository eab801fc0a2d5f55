"""BinStrings - Low-noise string extraction from executable sections, with MCP Server"""
__version__ = "1.0.0"
