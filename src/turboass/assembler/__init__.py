"""
Z80 Assembler
=============

A one-pass assembler for the Zilog Z80. Source lines are encoded into a 64K
memory image as they are read; symbols used before their definition are
patched in place as soon as the definition is seen.

Main Components
---------------
- **Assembler**: Drives the compilation and writes the output files
- **Lexer / parse_line**: Tokenize one line and split label, mnemonic, operands
- **ExpressionEvaluator**: Evaluates operand expressions, reporting pending symbols
- **SymbolTable**: Symbols with the fixups waiting for them
- **InstructionEncoder**: Encodes instructions and directives
- **MemoryImage**: The 64K target memory with written-range tracking
- **ListingFormatter**: Listing with cross reference

Assembly Process
----------------
For each line:

1. Tokenize and parse the line
2. Define the line's label at the current PC (patching waiting fixups)
3. Encode the instruction or directive into memory
4. Record the line for the listing

Example Usage
-------------
>>> from turboass.assembler import Assembler
>>> asm = Assembler()
>>> asm.assemble_string('''
...         jr   skip       ; forward reference
...         nop
... skip:   ret
... ''').hex()
'180100c9'
"""

from turboass.assembler.assembler import Assembler, assemble, assemble_file
from turboass.assembler.lexer import Lexer, Token, TokenType
from turboass.assembler.parser import ParsedLine, Operand, OperandKind, parse_line, classify_operand
from turboass.assembler.expressions import EvalResult, ExpressionEvaluator, evaluate_expression
from turboass.assembler.symbols import (
    Fixup,
    FixupKind,
    Symbol,
    SymbolKind,
    SymbolState,
    SymbolTable,
)
from turboass.assembler.memory import MemoryImage, MEMORY_SIZE
from turboass.assembler.context import CompilationContext
from turboass.assembler.codegen import InstructionEncoder
from turboass.assembler.listing import ListingFormatter

__all__ = [
    # Main class and functions
    "Assembler",
    "assemble",
    "assemble_file",
    # Lexer and parser
    "Lexer",
    "Token",
    "TokenType",
    "ParsedLine",
    "Operand",
    "OperandKind",
    "parse_line",
    "classify_operand",
    # Expressions
    "EvalResult",
    "ExpressionEvaluator",
    "evaluate_expression",
    # Symbols
    "Fixup",
    "FixupKind",
    "Symbol",
    "SymbolKind",
    "SymbolState",
    "SymbolTable",
    # Compilation state
    "MemoryImage",
    "MEMORY_SIZE",
    "CompilationContext",
    "InstructionEncoder",
    "ListingFormatter",
]
