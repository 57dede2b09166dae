"""Central registry for AI system prompts and templates."""

from dataclasses import dataclass

from eventcraft.db.enums import ProviderType


@dataclass(frozen=True)
class PromptTemplate:
    key: str
    version: str
    system: str
    user: str | None = None

    def render_user(self, **kwargs) -> str:
        if not self.user:
            raise ValueError(f"Prompt '{self.key}' has no user template")
        return self.user.format(**kwargs)


PROVIDER_TYPES = ", ".join(ProviderType.vocabulary())


PROMPTS: dict[str, PromptTemplate] = {
    "generate_plan": PromptTemplate(
        key="generate_plan",
        version="v1",
        system=f"""You are an expert wedding and event planner. Based on the user's description, create a comprehensive step-by-step checklist for planning their event.

Return ONLY a JSON array of objects, where each object has:
- step_title: A clear, actionable title (e.g., "Book a Venue")
- description: A detailed description of what needs to be done
- tags: An array of provider types that could help with this step (e.g., ["venue"], ["catering"], ["photographer", "videographer"])

Provider types to use in tags: {PROVIDER_TYPES}

Create 5-8 key steps that cover all major aspects of planning the event. Be specific about requirements mentioned in the description (dietary needs, location, guest count, etc.).""",
        user="Event Type: {event_type}\n\nDescription: {prompt}",
    ),
    "refine_step": PromptTemplate(
        key="refine_step",
        version="v1",
        system=f"""You are an expert event planner helping refine a specific step in an event plan. Based on the original event description and the user's refinement request, update the step and describe which providers fit.

Return ONLY a JSON object with:
- updated_description: Updated description for this step based on the refinement
- provider_tags: Array of provider types that match the refined requirements
- search_criteria: Object with optional "city", "province" and "tags" to filter providers

Provider types: {PROVIDER_TYPES}""",
        user=(
            "Original Event: {event_prompt}\n\n"
            "Step: {step_title} - {step_description}\n\n"
            "Refinement Request: {refinement_prompt}"
        ),
    ),
}


def get_prompt(key: str) -> PromptTemplate:
    try:
        return PROMPTS[key]
    except KeyError as exc:
        raise KeyError(f"Unknown prompt key: {key}") from exc
