"""
Integer pricing and liquidity kernels.

`cpmm_swap` prices trades; `lp_math` sizes deposits, share mints and redemptions.
Both are pure and raise engine exceptions on invalid input.
"""
