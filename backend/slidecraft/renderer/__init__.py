"""
Render pipeline shared by both paint surfaces.

- template_schema: template config models + presets
- render_model: the pure (inputs -> RenderModel) builder
- multi_image: 2-4 image layout engine
- geometry: frame mapping shared by preview and document surfaces
- preview / html_document: the two surfaces
"""
