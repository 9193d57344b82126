"""util package.

Modules:
    - utility_functions: Static analysis and peephole optimisation of scripts.
    - utility_scripts: Scripts to move, drop and push elements.
"""
