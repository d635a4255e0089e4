"""Unit tests for the persistence, upload and completion layers."""
