# PATH: tests/unit/test_imports_contract.py
"""
Import contract smoke tests.

PURPOSE: Catch ImportError regressions early.
RUN FIRST: python -m pytest tests/unit/test_imports_contract.py -v
"""

import unittest


class TestPackageImports(unittest.TestCase):
    """Public names re-exported by each package."""

    def test_core(self):
        import core

        for name in core.__all__:
            with self.subTest(name=name):
                self.assertTrue(hasattr(core, name))

    def test_lending(self):
        import lending

        for name in lending.__all__:
            with self.subTest(name=name):
                self.assertTrue(hasattr(lending, name))

    def test_chains(self):
        from chains import RPCProvider, RPCResponse, RPCStats

        self.assertTrue(callable(RPCProvider))
        self.assertTrue(callable(RPCResponse))
        self.assertTrue(callable(RPCStats))

    def test_cli_entrypoint(self):
        from run_simulation import main

        self.assertEqual(main.name, "main")


class TestConstantsContract(unittest.TestCase):
    """Values other code depends on."""

    def test_scales(self):
        from core.constants import BPS_DENOMINATOR, RAY, WAD

        self.assertEqual(WAD, 10**18)
        self.assertEqual(RAY, 10**27)
        self.assertEqual(BPS_DENOMINATOR, 10_000)

    def test_health_factor_sentinel(self):
        from core.constants import HEALTH_FACTOR_MAX

        self.assertEqual(HEALTH_FACTOR_MAX, 2**256 - 1)

    def test_interest_rate_mode(self):
        from core.constants import InterestRateMode

        self.assertEqual(int(InterestRateMode.STABLE), 1)
        self.assertEqual(int(InterestRateMode.VARIABLE), 2)

    def test_actions(self):
        from core.constants import Action

        self.assertEqual(
            [a.value for a in Action], ["supply", "withdraw", "borrow", "repay"]
        )


if __name__ == "__main__":
    unittest.main()
