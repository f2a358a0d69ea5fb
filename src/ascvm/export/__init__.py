"""ascvm export — text renderings of programs.

Public API::

    from ascvm.export import to_assembly
    listing = to_assembly(program)
"""

from .asm import format_op, to_assembly

__all__ = ["format_op", "to_assembly"]
