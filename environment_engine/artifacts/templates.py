"""Skeleton files for new plugins and themes."""

from typing import Dict


def plugin_files(name: str) -> Dict[str, str]:
    return {
        f"{name}.php": f"""<?php
/**
 * Plugin Name: {name}
 * Description: Custom plugin for development
 * Version: 1.0.0
 * Author: Dev Team
 */

if (!defined("ABSPATH")) exit;

// Plugin initialization
add_action("init", function() {{
    // Your plugin code here
}});
""",
    }


def theme_files(name: str) -> Dict[str, str]:
    return {
        "style.css": f"""/*
Theme Name: {name}
Description: Custom theme for development
Version: 1.0.0
Author: Dev Team
*/
""",
        "functions.php": "<?php // functions.php\n",
        "index.php": (
            "<?php get_header(); ?>\n"
            f"<main><h1>Hello World from {name}</h1></main>\n"
            "<?php get_footer(); ?>\n"
        ),
    }


def readme(name: str, kind: str) -> str:
    lines = [
        f"# {name}",
        "",
        f"WordPress {kind} for development.",
        "",
        "## Installation",
        f"1. Copy this {kind} to your WordPress {kind}s directory",
        f"2. Activate the {kind} through the WordPress admin",
        "",
    ]
    if kind == "plugin":
        lines += [
            "## Development",
            "This plugin was created using the WordPress dev environment.",
            "",
        ]
    return "\n".join(lines)
