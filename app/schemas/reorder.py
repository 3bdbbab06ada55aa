from pydantic import BaseModel, Field, model_validator
from typing import Optional, List


class ReorderRequest(BaseModel):
    """
    Either a single move (from_index -> to_index) or a complete explicit
    ordering of sibling ids.
    """
    from_index: Optional[int] = Field(None, ge=0)
    to_index: Optional[int] = Field(None, ge=0)
    ordered_ids: Optional[List[int]] = None

    @model_validator(mode="after")
    def one_form(self) -> "ReorderRequest":
        is_move = self.from_index is not None and self.to_index is not None
        if is_move == (self.ordered_ids is not None):
            raise ValueError("Provide either from_index and to_index, or ordered_ids")
        return self


class OrderAssignmentResponse(BaseModel):
    id: int
    order_index: int

    class Config:
        from_attributes = True


class ReorderResponse(BaseModel):
    items: List[OrderAssignmentResponse]

    @classmethod
    def from_assignments(cls, assignments) -> "ReorderResponse":
        return cls(items=[OrderAssignmentResponse(id=a.id, order_index=a.order_index) for a in assignments])
