"""Supabase-backed persistence for products, documents, parties and settings."""
