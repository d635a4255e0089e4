"""Test suite for the food chat backend."""
