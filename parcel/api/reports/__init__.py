"""Report packaging resources.

Usage
-----
Import the resources for route registration::

    from parcel.api.reports.resources import (
        PackagingRunResource,
        ReportPackageResource,
    )
"""
