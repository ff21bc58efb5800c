import json
from typing import Any

from pydantic import BaseModel, Field


class JsonSchemaProperty(BaseModel):
    type: str = "string"
    description: str | None = None
    enum: list[Any] | None = None

    def to_schema(self) -> dict:
        schema: dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        if self.enum is not None:
            schema["enum"] = list(self.enum)
        return schema


class ToolSpecification(BaseModel):
    """Describes a function the model may ask to call.

    Example::

        calculator = (
            ToolSpecification(name="calculator", description="adds")
            .add_parameter("first", "integer")
            .add_parameter("second", "integer")
        )
    """

    name: str
    description: str | None = None
    parameters: dict[str, JsonSchemaProperty] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)

    def add_parameter(
            self,
            name: str,
            type: str = "string",
            description: str | None = None,
            enum: list | None = None,
            required: bool = True,
    ) -> "ToolSpecification":
        self.parameters[name] = JsonSchemaProperty(
            type=type, description=description, enum=enum,
        )
        if required and name not in self.required:
            self.required.append(name)
        return self

    def tool_schema(self) -> dict:
        """Return an OpenAI-compatible function tool schema."""
        function: dict[str, Any] = {
            "name": self.name,
            "parameters": {
                "type": "object",
                "properties": {
                    name: prop.to_schema()
                    for name, prop in self.parameters.items()
                },
                "required": list(self.required),
            },
        }
        if self.description:
            function["description"] = self.description
        return {"type": "function", "function": function}

    def model_dump_json(self, **kwargs):
        """Serialize as the wire schema rather than the model fields"""
        return json.dumps(self.tool_schema())
