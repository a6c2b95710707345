"""
Tether Parsers
===============

Bounds-checked decoders for each stage of the PE import chain, leaf
first: byte cursor, header chain, section table, import descriptor walk
and thunk resolution.
"""
