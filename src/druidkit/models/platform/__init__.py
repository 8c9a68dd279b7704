from .data_source import DataSourceMetadata as DataSourceMetadata
