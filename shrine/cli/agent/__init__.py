# -*- coding: utf-8 -*-

# vim: set fileencoding=utf-8 ts=4 sw=4 tw=0 et :
