"""Field type registry with UI defaults."""

from dataclasses import dataclass


@dataclass
class UIDefaults:
    display_component: str
    edit_component: str
    alignment: str = "left"
    format: str | None = None


@dataclass
class FieldType:
    name: str
    label: str
    ui: UIDefaults


# The closed set of field types a model may declare
FIELD_TYPES: dict[str, FieldType] = {
    "string": FieldType(
        name="string",
        label="Short text",
        ui=UIDefaults(display_component="Text", edit_component="TextInput"),
    ),
    "text": FieldType(
        name="text",
        label="Long text",
        ui=UIDefaults(display_component="Text", edit_component="TextArea"),
    ),
    "number": FieldType(
        name="number",
        label="Number",
        ui=UIDefaults(
            display_component="Text",
            edit_component="NumberInput",
            alignment="right",
        ),
    ),
    "boolean": FieldType(
        name="boolean",
        label="Yes / No",
        ui=UIDefaults(display_component="Badge", edit_component="Checkbox"),
    ),
    "date": FieldType(
        name="date",
        label="Date",
        ui=UIDefaults(
            display_component="Text",
            edit_component="DatePicker",
            format="MMM D, YYYY",
        ),
    ),
    "email": FieldType(
        name="email",
        label="Email",
        ui=UIDefaults(display_component="Text", edit_component="TextInput"),
    ),
    "url": FieldType(
        name="url",
        label="URL",
        ui=UIDefaults(display_component="UrlLink", edit_component="TextInput"),
    ),
}


def is_field_type(type_name: str) -> bool:
    """Return True if type_name belongs to the closed field type set."""
    return isinstance(type_name, str) and type_name in FIELD_TYPES


def describe_field_types() -> list[dict]:
    """Serialize the registry for the model builder UI."""
    return [
        {
            "name": ft.name,
            "label": ft.label,
            "displayComponent": ft.ui.display_component,
            "editComponent": ft.ui.edit_component,
            "alignment": ft.ui.alignment,
            "format": ft.ui.format,
        }
        for ft in FIELD_TYPES.values()
    ]
