"""Application scaffold generation from epics.

The default path is deterministic Jinja2 templating: the same epics always
produce byte-identical files. ``ModelAssistedAppGenerator`` optionally
rewrites page bodies through the structured-generation port and marks every
file it touched.
"""

import json
import re
import time
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from beanstalk.core.exceptions import PreconditionFailedError
from beanstalk.core.logging import generation_logger
from beanstalk.core.monitoring import record_generation
from beanstalk.schemas.app import EnhancedFile, FileOrigin, GeneratedApp, GeneratedFile
from beanstalk.schemas.epic import Epic
from beanstalk.services.prompts import build_page_enhancement_prompt
from beanstalk.services.structured_llm import StructuredGenerator

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "app"

SHARED_COMPONENTS = [
    ("Navigation", "Top navigation linking every epic page"),
    ("DataTable", "Generic table for listing records"),
    ("SearchBar", "Text search input for filtering lists"),
    ("StatsCard", "Card showing a single key metric"),
    ("FormModal", "Modal form for adding or editing records"),
]

CONFIG_FILES = [
    ("vite.config.ts", "vite.config.ts", "Vite build configuration"),
    ("tsconfig.json", "tsconfig.json", "TypeScript compiler configuration"),
    ("tailwind.config.js", "tailwind.config.js", "Tailwind CSS configuration"),
    ("postcss.config.js", "postcss.config.js", "PostCSS configuration for Tailwind"),
    ("eslintrc.cjs", ".eslintrc.cjs", "ESLint configuration"),
    ("index.html", "index.html", "HTML entry point"),
]


def _environment() -> Environment:
    # [[ ]] and [% %] keep JSX braces out of the template syntax
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        variable_start_string="[[",
        variable_end_string="]]",
        block_start_string="[%",
        block_end_string="%]",
        comment_start_string="[#",
        comment_end_string="#]",
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
        autoescape=False,
    )


_WORD = re.compile(r"[A-Za-z0-9]+")


def _words(title: str) -> List[str]:
    # Fold accents so "Gestión" stays one word
    folded = unicodedata.normalize("NFKD", title).encode("ascii", "ignore").decode("ascii")
    return _WORD.findall(folded)


def component_base_name(title: str) -> str:
    """PascalCase identifier from an epic title"""
    words = _words(title)
    name = "".join(word[:1].upper() + word[1:] for word in words) or "Epic"
    if name[0].isdigit():
        name = f"Epic{name}"
    return name


def route_slug(title: str) -> str:
    return "-".join(word.lower() for word in _words(title)) or "epic"


def package_name(title: str) -> str:
    return route_slug(title)[:214]


@dataclass
class PagePlan:
    component: str
    route: str
    title: str


def plan_pages(epics: List[Epic]) -> List[PagePlan]:
    """One page per epic; duplicate names get numeric suffixes"""
    components, routes = set(), set()
    plans = []
    for epic in epics:
        base = component_base_name(epic.title)
        slug = route_slug(epic.title)
        component, route, n = f"{base}Page", f"/{slug}", 1
        while component in components or route in routes:
            n += 1
            component, route = f"{base}{n}Page", f"/{slug}-{n}"
        components.add(component)
        routes.add(route)
        plans.append(PagePlan(component=component, route=route, title=epic.title))
    return plans


def build_package_manifest(app_name: str) -> Dict[str, Any]:
    return {
        "name": package_name(app_name),
        "private": True,
        "version": "1.0.0",
        "type": "module",
        "scripts": {
            "dev": "vite",
            "build": "tsc && vite build",
            "lint": "eslint . --ext ts,tsx --report-unused-disable-directives --max-warnings 0",
            "preview": "vite preview",
        },
        "dependencies": {
            "@tanstack/react-query": "^5.0.0",
            "react": "^18.2.0",
            "react-dom": "^18.2.0",
            "wouter": "^3.0.0",
        },
        "devDependencies": {
            "@types/react": "^18.2.15",
            "@types/react-dom": "^18.2.7",
            "@typescript-eslint/eslint-plugin": "^6.0.0",
            "@typescript-eslint/parser": "^6.0.0",
            "@vitejs/plugin-react": "^4.0.3",
            "autoprefixer": "^10.4.14",
            "eslint": "^8.45.0",
            "eslint-plugin-react-hooks": "^4.6.0",
            "eslint-plugin-react-refresh": "^0.4.3",
            "postcss": "^8.4.24",
            "tailwindcss": "^3.3.0",
            "typescript": "^5.0.2",
            "vite": "^4.4.5",
        },
    }


def _file(path: str, content: str, description: str) -> GeneratedFile:
    return GeneratedFile(
        path=path,
        filename=path.rsplit("/", 1)[-1],
        content=content,
        description=description,
    )


class AppCodeGenerator:
    """Deterministic templated scaffold generation."""

    def __init__(self):
        self.env = _environment()

    def render(self, template: str, **context) -> str:
        return self.env.get_template(template).render(**context)

    def generate(self, app_name: str, epics: List[Epic]) -> GeneratedApp:
        if not epics:
            raise PreconditionFailedError(
                "No epics found for this PRD",
                detail="Generate epics for the PRD before generating application code",
            )

        start_time = time.perf_counter()
        pages = plan_pages(epics)
        epic_data = [epic.model_dump(mode="json") for epic in epics]
        context = {
            "app_name": app_name,
            "pages": pages,
            "epics": epic_data,
            "story_count": sum(len(epic.user_stories) for epic in epics),
        }

        page_files = [
            _file(
                f"src/pages/{page.component}.tsx",
                self.render("page.tsx.j2", page=page, epic=epic, app_name=app_name),
                f"Page for the '{page.title}' epic ({len(epic['user_stories'])} user stories)",
            )
            for page, epic in zip(pages, epic_data)
        ]

        components = [_file("src/App.tsx", self.render("App.tsx.j2", **context), "Root component with routing")]
        components.extend(
            _file(f"src/components/{name}.tsx", self.render(f"{name}.tsx.j2", **context), description)
            for name, description in SHARED_COMPONENTS
        )
        components.append(_file("src/main.tsx", self.render("main.tsx.j2", **context), "Application bootstrap"))

        hooks = [_file("src/hooks/useApi.ts", self.render("useApi.ts.j2", **context), "Data fetching hook with loading and error state")]
        utils = [_file("src/utils/format.ts", self.render("format.ts.j2", **context), "Formatting and CSV export helpers")]

        manifest = build_package_manifest(app_name)
        config = [
            _file(path, self.render(f"{template}.j2", **context), description)
            for template, path, description in CONFIG_FILES
        ]
        config.append(_file("src/index.css", self.render("index.css.j2", **context), "Tailwind entry stylesheet"))
        config.append(_file("package.json", json.dumps(manifest, indent=2) + "\n", "Package manifest"))

        app = GeneratedApp(
            app_name=app_name,
            components=components,
            pages=page_files,
            hooks=hooks,
            utils=utils,
            config=config,
            package_manifest=manifest,
            readme_text=self.render("README.md.j2", **context),
            deploy_notes=self.render("DEPLOY.md.j2", **context),
            processing_time_ms=int((time.perf_counter() - start_time) * 1000),
        )
        record_generation("app", True)
        generation_logger.info(
            "Application scaffold generated",
            app_name=app_name,
            pages=len(page_files),
            files=len(app.all_files()),
        )
        return app


class ModelAssistedAppGenerator:
    """Templated scaffold whose pages are then rewritten by the model."""

    def __init__(self, llm: StructuredGenerator, templates: Optional[AppCodeGenerator] = None):
        self.llm = llm
        self.templates = templates or AppCodeGenerator()

    async def generate(self, app_name: str, epics: List[Epic]) -> GeneratedApp:
        start_time = time.perf_counter()
        app = self.templates.generate(app_name, epics)

        enhanced_pages = []
        for page, epic in zip(app.pages, epics):
            try:
                result = await self.llm.generate_structured(
                    build_page_enhancement_prompt(app_name, epic, page.content),
                    EnhancedFile,
                )
            except Exception:
                record_generation("app_enhanced", False)
                raise
            enhanced_pages.append(page.model_copy(update={
                "content": result.content,
                "description": result.description or page.description,
                "generated_by": FileOrigin.MODEL,
            }))

        record_generation("app_enhanced", True)
        generation_logger.info("Pages enhanced by model", app_name=app_name, pages=len(enhanced_pages))
        return app.model_copy(update={
            "pages": enhanced_pages,
            "processing_time_ms": int((time.perf_counter() - start_time) * 1000),
        })
