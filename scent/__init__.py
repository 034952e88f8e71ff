"""
EVM bytecode disassembler and function dispatch analyzer.

Splits deployment bytecode into init, runtime and metadata sections, decodes
each into instructions and recovers the Solidity dispatcher's selectors,
entrypoints and estimated function bodies.
"""

from .analysis import (
    Analysis,
    Function,
    FunctionEntrypoint,
    FunctionSelector,
    analyze,
    analyze_function_entrypoints,
    analyze_function_selectors,
    analyze_functions,
)
from .decoder import Instruction, decode
from .loader import Program, Section, SectionKind, split

__version__ = "0.1.0"
