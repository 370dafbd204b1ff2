"""Storage models the todos plugin needs from the host."""

from perch.adapter import Field, Model, Schema

TODO_MODEL = "todo"

todos_schema = Schema(
    models={
        TODO_MODEL: Model(
            fields={
                "title": Field("string"),
                "completed": Field("boolean", required=False, default=False),
                "createdAt": Field("date"),
            }
        )
    }
)
