from .manifest_writer import ManifestWriter
