"""
Relationship resolution between independently loaded record sets
"""
from tabledata.relationships.context import DEFAULT_MAX_DEPTH, RelationshipContext
from tabledata.relationships.resolver import RecordSetLoader, RelationshipResolver

__all__ = ['DEFAULT_MAX_DEPTH', 'RelationshipContext', 'RecordSetLoader', 'RelationshipResolver']
