"""
Portal Economy Test Suite
=========================

Test Organization
-----------------
- tests/unit/          : Fast unit tests (in-memory persistence, manual clock)
- tests/integration/   : Integration tests with testcontainers (real Redis)

Testing Philosophy
------------------
- Unit tests: fast, isolated, test the economy rules
- Integration tests: slower, test real infrastructure interactions
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
