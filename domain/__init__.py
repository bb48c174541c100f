"""Pure domain model for GST billing, payment tracking and stock keeping."""
