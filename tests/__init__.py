"""
LayerStack Test Suite

Tests for:
- Timeline models (track, scene, resource, unit, layer, timeline)
- Compositor flattening and job payloads
- Composition runner (fetching, ordering, cleanup)
- SRT export
- Timeline API endpoints

Run tests with:
    pytest tests/ -v
"""
