"""Batch conversion and slippage simulation engine.

Repeatedly mints a basket of yield-bearing components from a base asset,
values the basket from two independent price sources per component,
records the realized slippage per cycle and redeems the basket again.
"""

__version__ = "0.1.0"
