"""Bitcoin scripts that perform arithmetic operations in F_q."""

from tx_engine import Script

from zkbisect.types.stack_elements import StackNumber
from zkbisect.util.utility_functions import bitmask_to_boolean_list, check_order
from zkbisect.util.utility_scripts import (
    bool_to_moving_function,
    mod,
    move,
    nums_to_script,
    pick,
    roll,
    verify_bottom_constant,
)


class Fq:
    """Construct Bitcoin scripts that perform arithmetic operations in F_q.

    Every script expects the modulus `q` at the bottom of the stack. Field elements are represented by their
    canonical representative in `[0, q)`: when `take_modulo` and `positive_modulo` are set, the output of every
    script is canonical again, so that it matches `zkbisect.arithmetic.prime_field.PrimeField` bit for bit.

    The scripts share the following keyword arguments:
        take_modulo (bool): If `True`, the result is reduced modulo `q`.
        positive_modulo (bool): If `True` the modulo of the result is taken positive. Defaults to `True`.
        check_constant (bool | None): If `True`, check if `q` is valid before proceeding. Defaults to `None`.
        clean_constant (bool | None): If `True`, remove `q` from the bottom of the stack. Defaults to `None`.
        is_constant_reused (bool | None): If `True`, `q` remains as the second-to-top element on the stack
            after execution. Defaults to `None`.
        x, y (StackNumber): The position in the stack of the operands and whether they are negated when used.
        rolling_option (int): Bitmask detailing which operands are removed from the stack, the first operand
            being the most significant bit. Defaults to removing every operand.

    Attributes:
        MODULUS: The characteristic of the field F_q.
    """

    def __init__(self, q: int):
        self.MODULUS = q

    def _take_modulo(
        self,
        take_modulo: bool,
        positive_modulo: bool,
        clean_constant: bool | None,
        is_constant_reused: bool | None,
    ) -> Script:
        if not take_modulo:
            return Script()
        out = roll(position=-1, n_elements=1) if clean_constant else pick(position=-1, n_elements=1)
        out += mod(is_positive=positive_modulo, is_constant_reused=is_constant_reused)
        return out

    def algebraic_sum(
        self,
        take_modulo: bool,
        positive_modulo: bool = True,
        check_constant: bool | None = None,
        clean_constant: bool | None = None,
        is_constant_reused: bool | None = None,
        x: StackNumber = StackNumber(1, False),  # noqa: B008
        y: StackNumber = StackNumber(0, False),  # noqa: B008
        rolling_option: int = 3,
    ) -> Script:
        """Compute the algebraic sum `± x ± y` of x and y.

        Stack input:
            - stack:    [q, ..., x, ..., y, ...]
            - altstack: []

        Stack output:
            - stack:    [q, ..., ± x ± y]
            - altstack: []
        """
        check_order([x, y])
        is_x_rolled, is_y_rolled = bitmask_to_boolean_list(rolling_option, 2)

        out = verify_bottom_constant(self.MODULUS) if check_constant else Script()

        out += move(y, bool_to_moving_function(is_y_rolled))  # Move y
        out += move(x.shift(1 - is_y_rolled), bool_to_moving_function(is_x_rolled))  # Move x
        out += Script.parse_string("OP_ADD" if (x.negate == y.negate) else "OP_SUB")
        out += Script.parse_string("OP_NEGATE" if y.negate else "")
        out += self._take_modulo(take_modulo, positive_modulo, clean_constant, is_constant_reused)
        return out

    def negate(
        self,
        take_modulo: bool,
        positive_modulo: bool = True,
        check_constant: bool | None = None,
        clean_constant: bool | None = None,
        is_constant_reused: bool | None = None,
        x: StackNumber = StackNumber(0, False),  # noqa: B008
        rolling_option: int = 1,
    ) -> Script:
        """Compute `-x`.

        Stack input:
            - stack:    [q, ..., x, ...]
            - altstack: []

        Stack output:
            - stack:    [q, ..., -x]
            - altstack: []
        """
        (is_x_rolled,) = bitmask_to_boolean_list(rolling_option, 1)

        out = verify_bottom_constant(self.MODULUS) if check_constant else Script()
        out += move(x, bool_to_moving_function(is_x_rolled))
        out += Script() if x.negate else Script.parse_string("OP_NEGATE")
        out += self._take_modulo(take_modulo, positive_modulo, clean_constant, is_constant_reused)
        return out

    def mul(
        self,
        take_modulo: bool,
        positive_modulo: bool = True,
        check_constant: bool | None = None,
        clean_constant: bool | None = None,
        is_constant_reused: bool | None = None,
        x: StackNumber = StackNumber(1, False),  # noqa: B008
        y: StackNumber = StackNumber(0, False),  # noqa: B008
        rolling_option: int = 3,
    ) -> Script:
        """Compute `x * y`.

        Stack input:
            - stack:    [q, ..., x, ..., y, ...]
            - altstack: []

        Stack output:
            - stack:    [q, ..., x * y]
            - altstack: []
        """
        check_order([x, y])
        is_x_rolled, is_y_rolled = bitmask_to_boolean_list(rolling_option, 2)

        out = verify_bottom_constant(self.MODULUS) if check_constant else Script()
        out += move(y, bool_to_moving_function(is_y_rolled))  # Move y
        out += move(x.shift(1 - is_y_rolled), bool_to_moving_function(is_x_rolled))  # Move x
        out += Script.parse_string("OP_MUL")
        out += Script.parse_string("OP_NEGATE" if x.negate != y.negate else "")
        out += self._take_modulo(take_modulo, positive_modulo, clean_constant, is_constant_reused)
        return out

    def square(
        self,
        take_modulo: bool,
        positive_modulo: bool = True,
        check_constant: bool | None = None,
        clean_constant: bool | None = None,
        is_constant_reused: bool | None = None,
        x: StackNumber = StackNumber(0, False),  # noqa: B008
        rolling_option: int = 1,
    ) -> Script:
        """Compute `x^2`.

        Stack input:
            - stack:    [q, ..., x, ...]
            - altstack: []

        Stack output:
            - stack:    [q, ..., x^2]
            - altstack: []
        """
        (is_x_rolled,) = bitmask_to_boolean_list(rolling_option, 1)

        out = verify_bottom_constant(self.MODULUS) if check_constant else Script()
        out += move(x, bool_to_moving_function(is_x_rolled))
        out += Script.parse_string("OP_DUP OP_MUL")
        out += self._take_modulo(take_modulo, positive_modulo, clean_constant, is_constant_reused)
        return out

    def inverse(
        self,
        take_modulo: bool,
        positive_modulo: bool = True,
        check_constant: bool | None = None,
        clean_constant: bool | None = None,
        is_constant_reused: bool | None = None,
        x: StackNumber = StackNumber(0, False),  # noqa: B008
        rolling_option: int = 1,
        mod_frequency: int = 1,
        flag_failure: bool = False,
    ) -> Script:
        """Compute x^-1.

        The script computes `x^(self.MODULUS - 2) = x^-1` (in Fq). It fails if `x == 0`, so that the inverse of
        zero is a trap of the script rather than a silent `0`. With `flag_failure`, the script does not fail: it
        pushes `x != 0` to the altstack and carries on.

        Stack input:
            - stack:    [q, ..., x, ...]
            - altstack: []

        Stack output:
            - stack:    [q, ..., x^-1]
            - altstack: [] or [x != 0] if `flag_failure`

        Args:
            mod_frequency (int): Number of multiplications after which the intermediate value is reduced.
                Defaults to `1`.
            flag_failure (bool): If `True`, a zero `x` is flagged on the altstack instead of failing the script.
                Defaults to `False`.
        """
        (is_x_rolled,) = bitmask_to_boolean_list(rolling_option, 1)
        bin_mod = [int(digit) for digit in bin(self.MODULUS - 2)[2:]]

        out = verify_bottom_constant(self.MODULUS) if check_constant else Script()
        out += move(x, bool_to_moving_function(is_x_rolled))
        out += Script.parse_string("OP_NEGATE") if x.negate else Script()

        # Guard against the inverse of zero
        out += Script.parse_string("OP_DUP")
        out += pick(position=-1, n_elements=1)
        out += Script.parse_string("OP_MOD OP_0NOTEQUAL " + ("OP_TOALTSTACK" if flag_failure else "OP_VERIFY"))

        # inverse computations in F_2 and F_3 are trivial
        if self.MODULUS not in {2, 3}:
            out += Script.parse_string("OP_DUP")

            mul_tracker = 0
            for digit in bin_mod[1:-1]:
                if digit == 0:
                    out += Script.parse_string("OP_DUP OP_MUL")
                    mul_tracker += 1
                else:
                    out += Script.parse_string("OP_DUP OP_MUL OP_OVER OP_MUL")
                    mul_tracker += 2
                if mul_tracker >= mod_frequency:
                    out += pick(position=-1, n_elements=1)
                    out += mod(is_positive=False, is_constant_reused=False)
                    mul_tracker = 0

            out += Script.parse_string("OP_DUP OP_MUL OP_MUL")

        out += self._take_modulo(take_modulo, positive_modulo, clean_constant, is_constant_reused)
        return out

    def is_zero(
        self,
        check_constant: bool | None = None,
        x: StackNumber = StackNumber(0, False),  # noqa: B008
        rolling_option: int = 1,
    ) -> Script:
        """Compute `1` if `x == 0` else `0`, for `x` in canonical form.

        Stack input:
            - stack:    [q, ..., x, ...]
            - altstack: []

        Stack output:
            - stack:    [q, ..., x == 0]
            - altstack: []
        """
        (is_x_rolled,) = bitmask_to_boolean_list(rolling_option, 1)

        out = verify_bottom_constant(self.MODULUS) if check_constant else Script()
        out += move(x, bool_to_moving_function(is_x_rolled))
        out += Script.parse_string("OP_NOT")
        return out

    def equal(
        self,
        check_constant: bool | None = None,
        x: StackNumber = StackNumber(1, False),  # noqa: B008
        y: StackNumber = StackNumber(0, False),  # noqa: B008
        rolling_option: int = 3,
    ) -> Script:
        """Compute `1` if `x == y` else `0`, for `x` and `y` in canonical form.

        Stack input:
            - stack:    [q, ..., x, ..., y, ...]
            - altstack: []

        Stack output:
            - stack:    [q, ..., x == y]
            - altstack: []
        """
        check_order([x, y])
        is_x_rolled, is_y_rolled = bitmask_to_boolean_list(rolling_option, 2)

        out = verify_bottom_constant(self.MODULUS) if check_constant else Script()
        out += move(y, bool_to_moving_function(is_y_rolled))  # Move y
        out += move(x.shift(1 - is_y_rolled), bool_to_moving_function(is_x_rolled))  # Move x
        out += Script.parse_string("OP_NUMEQUAL")
        return out

    def select(
        self,
        take_modulo: bool,
        positive_modulo: bool = True,
        check_constant: bool | None = None,
        clean_constant: bool | None = None,
        is_constant_reused: bool | None = None,
        bit: StackNumber = StackNumber(2, False),  # noqa: B008
        x: StackNumber = StackNumber(1, False),  # noqa: B008
        y: StackNumber = StackNumber(0, False),  # noqa: B008
        rolling_option: int = 7,
        flag_failure: bool = False,
    ) -> Script:
        """Compute `x` if `bit == 1` else `y`, without branching.

        The script computes `y + bit * (x - y)` and fails if `bit` is not `0` or `1`. With `flag_failure`, the
        script does not fail: it pushes `bit * bit == bit` to the altstack and carries on.

        Stack input:
            - stack:    [q, ..., bit, ..., x, ..., y, ...]
            - altstack: []

        Stack output:
            - stack:    [q, ..., bit ? x : y]
            - altstack: [] or [bit * bit == bit] if `flag_failure`

        Args:
            bit (StackNumber): The position in the stack of the selector, which comes first in `rolling_option`.
            flag_failure (bool): If `True`, a non-boolean `bit` is flagged on the altstack instead of failing the
                script. Defaults to `False`.
        """
        check_order([bit, x, y])
        is_bit_rolled, is_x_rolled, is_y_rolled = bitmask_to_boolean_list(rolling_option, 3)

        out = verify_bottom_constant(self.MODULUS) if check_constant else Script()
        out += move(y, bool_to_moving_function(is_y_rolled))  # Move y
        out += move(x.shift(1 - is_y_rolled), bool_to_moving_function(is_x_rolled))  # Move x
        out += Script.parse_string("OP_OVER OP_SUB")
        out += move(bit.shift(2 - is_y_rolled - is_x_rolled), bool_to_moving_function(is_bit_rolled))  # Move bit
        # bit * bit == bit iff bit is boolean
        out += Script.parse_string("OP_DUP OP_DUP OP_MUL OP_OVER")
        out += Script.parse_string("OP_NUMEQUAL OP_TOALTSTACK" if flag_failure else "OP_NUMEQUALVERIFY")
        out += Script.parse_string("OP_MUL OP_ADD")
        out += self._take_modulo(take_modulo, positive_modulo, clean_constant, is_constant_reused)
        return out

    def literal(self, value: int) -> Script:
        """Push the canonical representative of `value`."""
        return nums_to_script([value % self.MODULUS])
