"""
vibes.lsp - Language Server Protocol implementation for VibeScript

This package provides an LSP server for VibeScript, enabling editor
integration for features like:
- Diagnostics (compile errors)
- Hover classification of keywords, builtins and symbols
- Code completion of keywords and builtins

The LSP server communicates over stdio using JSON-RPC 2.0.
"""

from vibes.lsp.server import ServerConfig, VibesLanguageServer, start_server

__all__ = ["VibesLanguageServer", "ServerConfig", "start_server"]
