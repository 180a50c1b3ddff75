"""batchfeed test suite.

Test organization:
- test_batch_selector.py: batch-id checkpoint selection and rollback gaps
- test_mtime_selector.py: modification-time selection bounded by source limit
- test_selector_registry.py: selector registry and BatchSelection
- test_storage.py: local and fsspec storage backends
- test_config_loader.py: YAML configuration, .env loading and ${VAR} expansion
- test_watermark.py: checkpoint persistence
- test_resilience.py / test_errors.py / test_logging.py: ambient utilities
- test_cli.py: command line runner
"""
