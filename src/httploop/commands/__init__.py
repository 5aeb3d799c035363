"""Built-in CLI sub-commands for httploop.

* :mod:`~httploop.commands.request` -- ``request``, ``fetch`` and ``status``,
  registered directly on the root app.
* :mod:`~httploop.commands.config` -- the ``config`` group for viewing and
  changing client defaults.
"""
