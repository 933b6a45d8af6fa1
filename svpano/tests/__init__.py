"""
Test suite for the `svpano` package.

This package contains unit and integration tests for `svpano` functionality, including:

- `tiles` tests: zoom grids, tile enumeration and URLs.
- `core` tests: tile fetching with retries, bounded concurrency, stitching,
  panorama download and the batch runner.
- `views` tests: crop window math and view extraction.
- `my_utils` and `save` tests: border trimming, saving and CLI helpers.
- Async tests use `pytest.mark.asyncio` with fake sessions standing in for aiohttp.

Usage:

    # Run all tests in the package
    pytest svpano/tests

    # Run a specific test file
    pytest svpano/tests/test_core.py
"""
