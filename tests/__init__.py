# tests\__init__.py
"""
Test Suite for grammar_builder

Organization:
- unit tests per module (grammar_info, scanner, staleness, arguments, relocate, tools, config).
- `test_runner` / `test_build_driver` / `test_cli`: fork a fake generator script in a real
  subprocess (see conftest.py); no Java toolchain required.
"""
