#! /usr/bin/env python
"""Runs unit tests on all mpcomposer modules"""

import unittest
import logging

import test_http_composer
import test_http_grammar
import test_http_multipart
import test_streams


all_tests = unittest.TestSuite()
all_tests.addTest(test_http_composer.suite())
all_tests.addTest(test_http_grammar.suite())
all_tests.addTest(test_http_multipart.suite())
all_tests.addTest(test_streams.suite())


def suite():
    return all_tests


def load_tests(loader, tests, pattern):
    return suite()


if __name__ == "__main__":
    logging.basicConfig(level=logging.ERROR)
    unittest.main()
