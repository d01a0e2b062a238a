"""Canned ImageMagick output used across tests."""

VERSION_OUTPUT = "Version: ImageMagick 7.1.0-0 Q16 x86_64 https://imagemagick.org\n"

VERSION_OUTPUT_FULL = (
    "Version: ImageMagick 7.1.1-38 Q16-HDRI x86_64 22398 https://imagemagick.org\n"
    "Copyright: (C) 1999 ImageMagick Studio LLC\n"
    "License: https://imagemagick.org/script/license.php\n"
    "Features: Cipher DPC HDRI Modules OpenMP(4.5)\n"
    "Delegates (built-in): bzlib djvu fontconfig freetype heic jbig jng jp2 jpeg lcms\n"
)

VERSION_OUTPUT_IM6 = (
    "Version: ImageMagick 6.9.11-60 Q16 x86_64 2021-01-25 https://imagemagick.org\n"
)

# Format  Module  Mode  Description (builds before 7.1.0-19)
SAMPLE_OUTPUT = (
    "   Format  Module    Mode  Description\n"
    "-------------------------------------------------------------------------------\n"
    "      AAI* AAI        rw-  AAI Dune image\n"
    "      AI   PDF        -w-  Adobe Illustrator CS2\n"
    "      ARW  DNG        r--  Sony Alpha Raw Image Format\n"
    "      AVI  MPEG       r--  Microsoft Audio/Visual Interleaved\n"
    "      BMP  BMP        rw-  Microsoft Windows bitmap image\n"
    "      BMP2 BMP        -w-  Microsoft Windows bitmap image v2\n"
    "      GIF  GIF        rw+  CompuServe graphics interchange format\n"
    "      JPEG JPEG       rw+  Joint Photographic Experts Group JFIF format\n"
    "      JPEG* JPEG      rw+  same but with star suffix\n"
    "      PDF  PDF        rw-  Portable Document Format\n"
    "      PNG  PNG        rw-  Portable Network Graphics\n"
    "      SVG  SVG        rw+  Scalable Vector Graphics\n"
    "      3G2  VIDEO      ---  Media Container\n"
    "      TIFF TIFF       rw+  Tagged Image File Format\n"
)

# Format  Mode  Description (Module column absent, seen on Windows 7.1.0-19)
SAMPLE_OUTPUT_3COL = (
    "   Format  Mode  Description\n"
    "-------------------------------------------------------------------------------\n"
    "      3FR  r--   Hasselblad CFV/H3D39II\n"
    "      3G2  r--   Media Container\n"
    "     ASHLAR* -w+   Image sequence laid out in continuous irregular courses\n"
    "      AVI  r--   Microsoft Audio/Visual Interleaved\n"
    "      BMP* rw-   Microsoft Windows bitmap image\n"
    "      GIF* rw+   CompuServe graphics interchange format\n"
    "     JPEG* rw+   Joint Photographic Experts Group JFIF format\n"
    "      PNG* rw-   Portable Network Graphics\n"
    "      SVG* rw+   Scalable Vector Graphics\n"
    "     TIFF* rw+   Tagged Image File Format\n"
    "      XCF  r--   GIMP image\n"
)

HEADER_ONLY_OUTPUT = (
    "   Format  Module    Mode  Description\n"
    "-------------------------------------------------------------------------------\n"
)
