"""Test suite for the users API."""
