"""Prompt text for every model-backed operation.

Each builder returns a PromptSpec whose system message carries the exact JSON
shape the matching schema in ``beanstalk.schemas`` validates.
"""

from beanstalk.schemas.epic import Epic
from beanstalk.schemas.prd import GenerationOptions, PrdContent
from beanstalk.services.structured_llm import PromptSpec


PRD_JSON_SHAPE = """{
  "title": "Product or feature title",
  "content": {
    "purposeAndVision": "Why this product exists and where it is heading",
    "scope": {"inScope": ["..."], "outOfScope": ["..."]},
    "targetUsersAndPersonas": [
      {"name": "Persona name", "description": "Who they are", "characteristics": ["..."], "needs": ["..."]}
    ],
    "coreFeatures": [
      {"name": "Feature name", "description": "What it does", "priority": "high | medium | low", "userStory": "As a ..., I want ..., so that ..."}
    ],
    "uiUxAspirations": {"style": "...", "tone": "...", "userExperience": "..."},
    "nonFunctionalRequirements": [{"type": "performance | security | ...", "requirement": "...", "rationale": "..."}],
    "assumptions": ["..."],
    "dependencies": [{"type": "technical | business | ...", "dependency": "...", "impact": "..."}],
    "risksAndMitigations": [{"risk": "...", "impact": "...", "mitigation": "..."}],
    "successMetrics": [{"metric": "...", "target": "...", "timeframe": "..."}],
    "futureRoadmap": [{"name": "...", "description": "...", "businessValue": "...", "timeframe": "..."}]
  }
}"""

STORY_JSON_SHAPE = """{
  "title": "Short story title",
  "description": "As a <persona>, I want <capability>, so that <benefit>",
  "priority": "high | medium | low",
  "acceptanceCriteria": ["Given ..., when ..., then ..."],
  "estimatedStoryPoints": 3
}"""

EPIC_JSON_SHAPE = """{
  "epics": [
    {
      "title": "Epic title",
      "description": "What this body of work delivers",
      "priority": "high | medium | low",
      "estimatedEffort": "e.g. 2-3 weeks",
      "goals": ["..."],
      "userStories": [
        """ + STORY_JSON_SHAPE.replace("\n", "\n        ") + """
      ]
    }
  ]
}"""

INSIGHTS_JSON_SHAPE = """{
  "keyThemes": ["theme1", "theme2"],
  "userPersonas": [{"name": "persona", "demographics": "age/role", "needs": ["need1"], "frustrations": ["frustration1"], "goals": ["goal1"]}],
  "painPoints": ["pain1"],
  "businessGoals": ["goal1"],
  "technicalRequirements": ["req1"],
  "designAndBrandInsights": {
    "brandPersonality": ["trait1"],
    "visualDirection": "description",
    "toneOfVoice": "description",
    "userExperiencePhilosophy": "description"
  },
  "emotionalJourney": {"currentFeelings": ["frustrated"], "desiredFeelings": ["confident"]},
  "missingInformation": ["missing1"],
  "suggestedNextSteps": ["step1"]
}"""

JSON_ONLY = "Respond with a single JSON object and nothing else. Every key shown is required; use empty lists or empty strings when the source gives you nothing."


def build_prd_prompt(conversation_text: str, options: GenerationOptions) -> PromptSpec:
    emphasis = []
    if options.extract_personas:
        emphasis.append("- Extract every distinct user type mentioned into targetUsersAndPersonas with concrete characteristics and needs.")
    if options.identify_features:
        emphasis.append("- Identify every capability discussed, including ones mentioned in passing, and list each as a core feature.")
    if options.generate_acceptance_criteria:
        emphasis.append("- Write each core feature's userStory so it ends with testable acceptance criteria.")

    system = f"""You are a senior product manager expert at analyzing conversations and generating comprehensive Product Requirements Documents (PRDs).

Based on the conversation provided, extract the product vision, scope, users, features, constraints and success measures, and write a professional PRD.

Focus on:
- Actual user needs and pain points mentioned
- Specific features or capabilities discussed
- Business goals and success metrics
- Technical constraints or requirements
- User workflows and use cases
{chr(10).join(emphasis)}

Do not invent facts the conversation does not support; prefer an empty list to a made-up entry.

{JSON_ONLY}

Use this exact format:
{PRD_JSON_SHAPE}"""

    user = f"Please analyze this conversation and generate a comprehensive PRD:\n\n{conversation_text}"
    return PromptSpec(operation="generate_prd", system=system, user=user)


def summarize_prd(title: str, content: PrdContent) -> str:
    """Plain-text rendering of a PRD for use inside other prompts"""
    lines = [f"PRD TITLE: {title}", "", f"PURPOSE AND VISION: {content.purpose_and_vision}", ""]

    lines.append("IN SCOPE:")
    lines.extend(f"- {item}" for item in content.scope.in_scope)
    lines.append("OUT OF SCOPE:")
    lines.extend(f"- {item}" for item in content.scope.out_of_scope)

    lines.append("\nTARGET USERS:")
    for persona in content.target_users_and_personas:
        lines.append(f"- {persona.name}: {persona.description} (needs: {', '.join(persona.needs) or 'n/a'})")

    lines.append("\nCORE FEATURES:")
    for feature in content.core_features:
        lines.append(f"- [{feature.priority}] {feature.name}: {feature.description}")
        if feature.user_story:
            lines.append(f"  Story: {feature.user_story}")

    ui = content.ui_ux_aspirations
    lines.append(f"\nUI/UX: style={ui.style}; tone={ui.tone}; experience={ui.user_experience}")

    lines.append("\nNON-FUNCTIONAL REQUIREMENTS:")
    lines.extend(f"- {nfr.type}: {nfr.requirement}" for nfr in content.non_functional_requirements)
    lines.append("\nASSUMPTIONS:")
    lines.extend(f"- {item}" for item in content.assumptions)
    lines.append("\nDEPENDENCIES:")
    lines.extend(f"- {dep.type}: {dep.dependency} (impact: {dep.impact})" for dep in content.dependencies)
    lines.append("\nRISKS:")
    lines.extend(f"- {risk.risk} -> {risk.mitigation}" for risk in content.risks_and_mitigations)
    lines.append("\nSUCCESS METRICS:")
    lines.extend(f"- {m.metric}: {m.target} ({m.timeframe})" for m in content.success_metrics)
    lines.append("\nFUTURE ROADMAP:")
    lines.extend(f"- {item.name}: {item.description} ({item.timeframe})" for item in content.future_roadmap)
    return "\n".join(lines)


def build_epic_prompt(title: str, content: PrdContent) -> PromptSpec:
    system = f"""You are an experienced agile product owner. Break the Product Requirements Document you are given into delivery epics.

Rules:
- Produce 3 to 5 epics that together cover every core feature.
- Give each epic 3 to 5 user stories in "As a ..., I want ..., so that ..." form.
- Give each story 2 to 5 concrete acceptance criteria and an integer story-point estimate (Fibonacci: 1, 2, 3, 5, 8, 13).
- Priorities are exactly one of: high, medium, low.

{JSON_ONLY}

Use this exact format:
{EPIC_JSON_SHAPE}"""

    user = f"Generate epics and user stories for this PRD:\n\n{summarize_prd(title, content)}"
    return PromptSpec(operation="generate_epics", system=system, user=user)


def build_story_prompt(epic: Epic, request: str) -> PromptSpec:
    existing = "\n".join(f"- {story.title}" for story in epic.user_stories) or "- (none yet)"
    goals = "\n".join(f"- {goal}" for goal in epic.goals) or "- (none listed)"

    system = f"""You are an experienced agile product owner adding one user story to an existing epic.

Write exactly one new story that fulfils the request, fits the epic, and does not duplicate an existing story. Priorities are exactly one of: high, medium, low.

{JSON_ONLY}

Use this exact format:
{STORY_JSON_SHAPE}"""

    user = f"""EPIC: {epic.title}
DESCRIPTION: {epic.description}
GOALS:
{goals}
EXISTING STORIES:
{existing}

REQUEST: {request}"""
    return PromptSpec(operation="add_story", system=system, user=user)


def build_page_enhancement_prompt(app_name: str, epic: Epic, template_source: str) -> PromptSpec:
    stories = "\n".join(
        f"- {story.title}: {story.description}\n  Acceptance: {'; '.join(story.acceptance_criteria)}"
        for story in epic.user_stories
    )
    system = f"""You are a senior React and TypeScript engineer. Improve a generated page component so it implements its user stories with working state, forms, loading and error states, using Tailwind CSS and the shared components it already imports.

Keep the component name, default export and imports compatible with the scaffold. Return the full file.

Respond with a single JSON object and nothing else, in this exact format:
{{"content": "<complete file source>", "description": "<one sentence on what the page does>"}}"""

    user = f"""APP: {app_name}
EPIC: {epic.title}
DESCRIPTION: {epic.description}
USER STORIES:
{stories}

CURRENT FILE:
{template_source}"""
    return PromptSpec(operation="enhance_page", system=system, user=user)


def build_follow_up_prompt(transcript: str, phase: str, context: str) -> PromptSpec:
    system = """You are a warm, deep and witty product person conducting a discovery session that will become a PRD. You ask questions that uncover not just what to build, but why it matters and how it should feel.

Generate ONE follow-up question that digs deeper into what has been discussed, uncovers missing information a PRD needs (users, problems, features, technical constraints, design and brand, business goals), and moves the conversation toward actionable specifications. Prefix it with a fitting emoji.

Respond with a single JSON object and nothing else: {"question": "..."}"""

    user = f"""CURRENT CONVERSATION TRANSCRIPT:
"{transcript}"

CURRENT PHASE: {phase}
CONTEXT: {context or 'none'}"""
    return PromptSpec(operation="follow_up_question", system=system, user=user)


def build_insights_prompt(transcript: str) -> PromptSpec:
    system = f"""You are an expert at analyzing product discovery conversations. Extract structured, actionable insights for PRD development, including design, branding, user experience and emotional aspects.

{JSON_ONLY}

Use this exact format:
{INSIGHTS_JSON_SHAPE}"""

    user = f'CONVERSATION:\n"{transcript}"'
    return PromptSpec(operation="conversation_insights", system=system, user=user)
