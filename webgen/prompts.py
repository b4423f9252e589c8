from __future__ import annotations

from webgen.spec import WebsiteSpec

_SITE_PROMPT = """
You are a senior frontend engineer and UX designer. Generate a production-quality, fully responsive, single-file website.

=== PROJECT ===
Project name: {project_name}
Brief: {brief}
Primary color: {primary_color}
Visual style: {style}
Tone of voice: {tone}
Pages (render each as its own <section id="..."> in this order): {pages}

=== STRUCTURE ===
- One HTML document with <!doctype html>, <html lang="en">, <head> and <body>.
- A sticky header with the project name and a navigation bar linking to every page section by id ({pages}).
- One <section> per page listed above, using the page name as the section id. "home" is the hero section.
- A footer with copyright for {project_name} and repeated navigation links.
- A light/dark theme toggle button in the header; persist the choice in localStorage and respect prefers-color-scheme on first load.
- Use {primary_color} as the accent color via a CSS custom property (--primary) for buttons, links and highlights.

=== ACCESSIBILITY ===
- Semantic landmarks (header, nav, main, footer), one <h1>, ordered headings.
- Visible focus styles, sufficient color contrast in both themes, aria-label on icon-only buttons.
- Alt text on every image; a "skip to content" link as the first focusable element.

=== SEO ===
- <title> and <meta name="description"> derived from the brief.
- Open Graph tags (og:title, og:description, og:type).
- A JSON-LD Organization block naming {project_name}.

=== PERFORMANCE ===
- All CSS in one <style> tag and all JS in one <script> tag at the end of <body>; no frameworks, no build step.
- No external fonts or scripts; images only as inline SVG or lightweight placeholders with width/height set.
- Keep the script small and dependency-free.

=== CONTENT ===
Write real, specific copy for every section that matches the brief and a {tone} tone. No lorem ipsum.

Return ONLY valid HTML. No markdown fences. No explanations.
"""


def build_prompt(spec: WebsiteSpec) -> str:
    """Render the generation prompt for a normalized spec."""
    return _SITE_PROMPT.format(
        project_name=spec.project_name,
        brief=spec.brief,
        primary_color=spec.primary_color,
        style=spec.style,
        tone=spec.tone,
        pages=", ".join(spec.pages),
    ).strip()
