"""
Kernel layer.

Pure, integer-only pricing and liquidity kernels used by the pool engine.
`flashpair.kernels.python` holds the human-readable Python implementations.
"""
