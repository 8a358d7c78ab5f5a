from analyzers.design import DesignAnalyzer
from extraction.models import Heading, Image
from vision import DesignVision

PLAIN_HTML = "<html><body><h1>Widgets</h1><p style='color: #333'>Hello</p></body></html>"


def test_clean_page_scores_full_marks(make_page):
    result = DesignAnalyzer().analyze(make_page(html=PLAIN_HTML))

    assert result.analyzed
    assert result.score == 100
    assert result.raw_data["color_scheme"]["contrast_ratio"] == 7
    assert result.raw_data["layout"]["viewport_utilization"] == 70


def test_layout_shift_from_performance_is_penalized(make_page):
    result = DesignAnalyzer().analyze(make_page(html=PLAIN_HTML), cls=0.25)

    assert result.score == 80
    assert "High layout shift detected - affects user experience" in result.raw_data["issues"]


def test_large_palette_and_font_mix(make_page):
    colors = " ".join(f"color: #{i:02d}{i:02d}{i:02d};" for i in range(12))
    fonts = " ".join(
        f"font-family: {family}, sans-serif;" for family in ("Inter", "Lora", "Roboto", "Poppins")
    )
    html = f"<html><head><style>{colors} {fonts}</style></head><body></body></html>"

    result = DesignAnalyzer().analyze(make_page(html=html))

    # palette > 10 (-15), four families (-10)
    assert result.score == 75
    assert result.raw_data["color_scheme"]["color_count"] == 12
    assert result.raw_data["typography"]["font_families"] == ["Inter", "Lora", "Roboto", "Poppins"]


def test_small_font_sizes_hurt_readability(make_page):
    sizes = " ".join(f"font-size: {size}px;" for size in (9, 10, 11, 12, 13, 8))
    html = f"<html><head><style>{sizes}</style></head><body></body></html>"

    result = DesignAnalyzer().analyze(make_page(html=html))

    assert result.raw_data["typography"]["readability_score"] == 70
    assert result.score == 100


def test_heuristic_insights_without_vision(make_page):
    data = make_page(
        html=PLAIN_HTML,
        headings=(Heading(1, "One"), Heading(1, "Two")),
        images=(Image(src="/a.png"),),
    )

    result = DesignAnalyzer().analyze(data)

    insights = result.raw_data["ai_insights"]
    assert insights["source"] == "heuristic"
    assert insights["primary_cta"] == 'Primary CTA appears to be: "Get started"'
    assert "Multiple H1 tags detected - should use only one per page" in insights["design_issues"]
    assert "Add alt text to all images for better accessibility and SEO" in result.recommendations
    assert "Use exactly one H1 tag per page for better content hierarchy" in result.recommendations


def test_available_vision_replaces_heuristics(make_page):
    vision = DesignVision(
        primary_cta="Shop now",
        visual_style="Bold",
        design_issues=["Hero image crowds the headline"],
        recommendations=["Give the hero headline more breathing room"],
    )

    result = DesignAnalyzer().analyze(make_page(html=PLAIN_HTML), vision=vision)

    assert result.raw_data["ai_insights"]["source"] == "vision"
    assert result.raw_data["ai_insights"]["primary_cta"] == "Shop now"
    assert result.recommendations[-1] == "Give the hero headline more breathing room"


def test_unavailable_vision_is_ignored(make_page):
    vision = DesignVision(recommendations=["Manual design review recommended"], available=False)

    result = DesignAnalyzer().analyze(make_page(html=PLAIN_HTML), vision=vision)

    assert result.raw_data["ai_insights"]["source"] == "heuristic"
    assert "Manual design review recommended" not in result.recommendations


def test_button_with_nested_markup_is_the_cta(make_page):
    html = "<html><body><h1>Shop</h1><button class='cta'>Buy <b>now</b></button></body></html>"

    result = DesignAnalyzer().analyze(make_page(html=html, links=()))

    assert result.raw_data["ai_insights"]["primary_cta"] == 'Primary CTA appears to be: "Buy now"'


def test_script_and_style_bodies_are_not_visible_text(make_page):
    body = "<p>Hi</p>"
    bare = f"<html><body>{body}</body></html>"
    padded = (
        "<html><head><style>p { margin: 0; }</style></head><body>"
        f"{body}<script>var tracking = 'x'.repeat(400);</script></body></html>"
    )

    bare_ratio = DesignAnalyzer().analyze(make_page(html=bare)).raw_data["layout"]["whitespace_ratio"]
    padded_ratio = DesignAnalyzer().analyze(make_page(html=padded)).raw_data["layout"][
        "whitespace_ratio"
    ]

    # Only "Hi" counts as text, so extra markup raises the ratio
    assert padded_ratio > bare_ratio
    assert padded_ratio == round((len(padded) - 2) / len(padded) * 100)


def test_colors_and_fonts_outside_css_are_ignored(make_page):
    html = (
        "<html><body><h1>Palette #fff #000 #123</h1>"
        "<p>font-family: Comic Sans; font-size: 9px</p>"
        "<p style='font-family: Inter; color: #222'>Styled</p></body></html>"
    )

    result = DesignAnalyzer().analyze(make_page(html=html))

    assert result.raw_data["color_scheme"]["dominant_colors"] == ["#222"]
    assert result.raw_data["typography"]["font_families"] == ["Inter"]
    assert result.raw_data["typography"]["font_sizes"] == []
