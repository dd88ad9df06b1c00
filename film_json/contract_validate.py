import jsonschema

from .schema_loader import load_schema


def validate_scene_payload(data) -> None:
    """Validate a pasted scene object against the Scene.v1.json contract.

    Only the import shape is checked (``scene_id`` present, ``shots`` a list
    of objects); full rule checks run afterwards through the validator.

    Raises jsonschema.ValidationError if non-conformant.
    """
    schema = load_schema("Scene.v1.json")
    jsonschema.validate(data, schema)
