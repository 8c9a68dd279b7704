from .data_source_handler import DataSourceHandler as DataSourceHandler
