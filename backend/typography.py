# ====== TYPOGRAPHY ======
# DOCX sizes are in points, DOCX spacing in twips (1/20 pt).
# PDF sizes and spacing are in points.

DOCX_STYLES = {
    "fonts": {
        "body": "Charter",
        "heading": "Inter",
        "code": "Courier New",
    },
    "sizes": {
        "title": 32,
        "subtitle": 20,
        "author": 18,
        "chapter_title": 24,
        "h1": 20,
        "h2": 18,
        "h3": 16,
        "body": 12,
        "code": 10,
    },
    "spacing": {
        "paragraph_before": 200,
        "paragraph_after": 200,
        "list_paragraph": 100,
        "list_item": 50,
        "list_after": 100,
        "chapter_before": 400,
        "chapter_after": 300,
        "heading_before": 300,
        "heading_after": 150,
        "block": 200,
    },
    "indent": {
        "list": 720,
        "blockquote": 720,
    },
    "colors": {
        "title": "1a202c",
        "subtitle": "4a5568",
        "author": "2d3748",
        "accent": "4f46e5",
        "quote": "666666",
        "code": "333333",
        "code_shading": "f5f5f5",
        "rule": "cccccc",
        "page_number": "808080",
    },
}

TYPOGRAPHY = {
    "fonts": {
        "serif": "Times-Roman",
        "serif_bold": "Times-Bold",
        "serif_italic": "Times-Italic",
        "serif_bold_italic": "Times-BoldItalic",
        "sans": "Helvetica",
        "sans_bold": "Helvetica-Bold",
        "sans_oblique": "Helvetica-Oblique",
        "sans_bold_oblique": "Helvetica-BoldOblique",
        "mono": "Courier",
    },
    "sizes": {
        "title": 28,
        "author": 16,
        "chapter_title": 20,
        "h1": 18,
        "h2": 16,
        "h3": 14,
        "body": 12,
        "code": 9,
        "captions": 9,
    },
    "spacing": {
        "paragraph": 12,
        "chapter": 24,
        "heading_before": 16,
        "heading_after": 8,
        "list": 6,
        "indent": 20,
    },
    "colors": {
        "text": "333333",
        "heading": "1a1a1a",
        "accent": "4f46e5",
        "quote": "666666",
        "page_number": "666666",
    },
}


def lines(units):
    """Convert a spacing amount in points to lines of body text."""
    return units / TYPOGRAPHY["sizes"]["body"]
