"""
Media container readers.

Pure Python parsers that read only the metadata needed to date a file:

- ebml_parser: Matroska/WebM EBML header, Segment Info and Tags
- mp4_parser: ISO-BMFF ftyp and moov/mvhd
"""
