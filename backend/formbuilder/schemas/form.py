from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any, Union
from datetime import datetime
from enum import Enum


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"
    NUMBER = "number"
    RATING = "rating"
    FILE = "file"
    FILE_UPLOAD = "file_upload"
    PHONE = "phone"
    SIGNATURE = "signature"
    DATETIME = "datetime"
    TOGGLE = "toggle"
    MULTISELECT = "multiselect"


class LogicOperator(str, Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GT = "gt"
    LT = "lt"
    GTE = "gte"
    LTE = "lte"


class LogicAction(str, Enum):
    SHOW = "show"
    HIDE = "hide"
    REQUIRE = "require"
    DISABLE = "disable"
    SKIP_PAGE = "skip_page"


class ConditionType(str, Enum):
    AND = "AND"
    OR = "OR"


class LogicCondition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field_id: str = Field(alias="fieldId")
    # Kept as plain strings: rules are user-authored and an unknown
    # operator must evaluate to False instead of failing validation.
    operator: str
    value: Union[bool, int, float, str, None] = None


class LogicRule(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    conditions: List[LogicCondition] = []
    condition_type: Optional[str] = Field(default=ConditionType.AND.value, alias="conditionType")
    action: str

    @field_validator("conditions", mode="before")
    @classmethod
    def default_conditions(cls, value):
        return [] if value is None else value


class FormField(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    type: Union[FieldType, str]
    label: str = ""
    required: bool = False
    placeholder: Optional[str] = None
    options: List[Any] = []
    help_text: Optional[str] = Field(default=None, alias="helpText")
    logic: List[LogicRule] = []

    @field_validator("logic", mode="before")
    @classmethod
    def default_logic(cls, value):
        # The builder stores fields without rules as logic: null
        return [] if value is None else value


class FormSchema(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str = ""
    fields: List[FormField] = []


class FieldState(BaseModel):
    visible: bool = True
    required: bool = False
    disabled: bool = False


class Form(BaseModel):
    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    schema_: FormSchema = Field(alias="schema")
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class LogicEvaluationRequest(BaseModel):
    data: Dict[str, Any] = {}


class LogicEvaluationResponse(BaseModel):
    form_id: str
    states: Dict[str, FieldState]
    missing_required: List[str] = []


class FormResponse(BaseModel):
    id: str
    form_id: str
    data: Dict[str, Any]
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
