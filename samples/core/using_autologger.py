#!/usr/bin/env python3
"""
Autologger example with stdlib and structlog output.
"""

import logging

from conduit.core import Conduit


class PriceCalculator(Conduit):
    def __init__(self, use_structlog=False):
        super().__init__(use_structlog=use_structlog, stream_level=logging.DEBUG)

    @Conduit.autolog()
    def total(self, prices, discount=0.0):
        return sum(prices) * (1 - discount)

    @Conduit.autolog()
    def unit_price(self, total, quantity):
        return total / quantity


if __name__ == "__main__":
    for use_structlog in (False, True):
        calculator = PriceCalculator(use_structlog=use_structlog)
        calculator.total([2, 8, 120], discount=0.1)
        try:
            calculator.unit_price(10, 0)
        except ZeroDivisionError:
            pass
