from .spatial_query_client import SpatialQueryClient, parse_property_list

__all__ = ["SpatialQueryClient", "parse_property_list"]
