from src.skills.base import SkillRegistry
from src.skills.briefing.handler import skill as briefing_skill
from src.skills.calendar.handler import skill as calendar_skill
from src.skills.contacts.handler import skill as contacts_skill
from src.skills.documents.handler import skill as documents_skill
from src.skills.drive.handler import skill as drive_skill
from src.skills.gmail.handler import skill as gmail_skill
from src.skills.greeting.handler import skill as greeting_skill
from src.skills.reminders.handler import skill as reminders_skill
from src.skills.tasks.handler import skill as tasks_skill
from src.skills.web_search.handler import skill as web_search_skill


def create_registry() -> SkillRegistry:
    """Create and populate the skill registry. Fails if any action type is unhandled."""
    registry = SkillRegistry()
    registry.register(briefing_skill)
    registry.register(tasks_skill)
    registry.register(calendar_skill)
    registry.register(gmail_skill)
    registry.register(reminders_skill)
    registry.register(contacts_skill)
    registry.register(drive_skill)
    registry.register(documents_skill)
    registry.register(web_search_skill)
    registry.register(greeting_skill)
    registry.ensure_complete()
    return registry
