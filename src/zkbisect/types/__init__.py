"""types package.

This package provides custom types.

Modules:
    - stack_elements: Represents elements on the stack, with properties like `position` and `negate`, and the
        StackLayout class tracking the wire held by every slot of the stack at compile time.
"""
