"""
STIG Checklist Test Suite

Test Organization:
- test_core/ - Core infrastructure tests (config, constants, logging, deps)
- test_xml/ - XML helpers (schema, sanitizer, utils, discussion grammar)
- test_io/ - File operations and archive extraction
- test_models/ - Data model tests
- test_parser/ - XCCDF and CCI list parsers
- test_repository/ - In-memory repository and snapshots
- test_processor/ - Import, upgrade and export workers
- test_ui/ - Command-line interface
- test_integration/ - End-to-end workflows

Running Tests:
    # All tests
    python -m pytest tests/ -v

    # Skip end-to-end workflows
    python -m pytest tests/ -m "not integration"
"""

__version__ = "1.0.0"
__all__ = []
