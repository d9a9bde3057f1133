"""
Tests Module: Unit and Integration Tests

Test Coverage:
    - Core types, errors, configuration and row ids
    - Structured logging
    - In-memory and Redis host stores, event dispatch
    - Group resolution, sessions, rows and diff finalize
    - Throttle and trigger coordinator
    - Sheet workers end to end
"""
