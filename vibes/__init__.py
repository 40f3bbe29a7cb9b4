"""
vibes - Language tooling for VibeScript

Subpackages:
- compiler: tokenizer and structural checker used to validate scripts
- lsp: Language Server Protocol server (diagnostics, hover, completion)
"""

__version__ = "0.1.0"
