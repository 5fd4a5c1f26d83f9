from .associator import TaskAssociator, AssociationOutcome, as_content

__all__ = ["TaskAssociator", "AssociationOutcome", "as_content"]
