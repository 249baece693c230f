"""Allocator governance service: application lifecycle for datacap allocators."""
