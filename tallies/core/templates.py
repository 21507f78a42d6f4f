"""Quick-start counter templates."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CounterTemplate:
    """Prefilled values for the add-counter form."""

    name: str
    icon: str
    target: int
    color: str

    def to_dict(self) -> dict:
        return {"name": self.name, "icon": self.icon, "target": self.target, "color": self.color}


COUNTER_TEMPLATES: list[CounterTemplate] = [
    CounterTemplate("Water Glasses", "💧", 8, "#5AC8FA"),
    CounterTemplate("Coffee Cups", "☕", 3, "#8B4513"),
    CounterTemplate("Steps", "👟", 10000, "#FF9500"),
    CounterTemplate("Push-ups", "💪", 50, "#FF3B30"),
    CounterTemplate("Pages Read", "📖", 30, "#5856D6"),
    CounterTemplate("Meditation", "🧘", 1, "#34C759"),
    CounterTemplate("Tasks Done", "✅", 10, "#007AFF"),
    CounterTemplate("Calls Made", "📞", 5, "#AF52DE"),
]


def get_template(name: str) -> CounterTemplate | None:
    """Look up a template by name (case-insensitive)."""
    wanted = name.casefold()
    for template in COUNTER_TEMPLATES:
        if template.name.casefold() == wanted:
            return template
    return None
