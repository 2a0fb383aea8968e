"""UI-facing layer: controllers and coordinators without toolkit code."""
