"""
Test suite for the order ingestion engine.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_order_ingestion_service.py -v
"""
