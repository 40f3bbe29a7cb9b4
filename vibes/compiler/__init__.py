"""
vibes.compiler - The VibeScript compile front end

Phases:
1. Tokenize (lexer.py): Text -> Tokens with line/column positions
2. Check (engine.py): Tokens -> block/delimiter structure, definitions
"""

from vibes.compiler.engine import Definition, Engine, Script
from vibes.compiler.errors import CompileError, ParseError, format_code_frame
from vibes.compiler.lexer import Token, tokenize

__all__ = [
    "Engine",
    "Script",
    "Definition",
    "CompileError",
    "ParseError",
    "format_code_frame",
    "Token",
    "tokenize",
]
