"""Chat and food image analysis backend."""
