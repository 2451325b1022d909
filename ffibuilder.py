from cffi import FFI
import pkgconfig

ffibuilder = FFI()
# include the libkdumpfile header
kdumpfile = {key: list(value) for key, value in pkgconfig.parse('libkdumpfile').items()}
ffibuilder.set_source(
    "kdumpfile._raw", """
#include <kdumpfile.h>
""", **kdumpfile)
# The enum values are spelled out so the compiler checks them against
# kdumpfile.h; kdumpfile.status, kdumpfile.attr and kdumpfile.handle hardcode the same values.
ffibuilder.cdef("""
typedef uint64_t kdump_num_t;
typedef uint64_t kdump_addr_t;
typedef uint64_t kdump_paddr_t;

typedef enum _tag_kdump_status {
    kdump_ok = 0,
    kdump_syserr = 1,
    kdump_unsupported = 2,
    kdump_nodata = 3,
    kdump_dataerr = 4,
    kdump_invalid = 5,
    kdump_nokey = 6,
    kdump_eof = 7,
} kdump_status;

enum kdump_attr_type {
    kdump_directory = 1,
    kdump_number = 2,
    kdump_address = 3,
    kdump_string = 4,
    ...
};

#define KDUMP_KPHYSADDR 0
#define KDUMP_MACHPHYSADDR 1
#define KDUMP_KVADDR 2
#define KDUMP_XENVADDR 3

union kdump_attr_value {
    kdump_num_t number;
    kdump_addr_t address;
    const char *string;
    ...;
};

struct kdump_attr {
    enum kdump_attr_type type;
    union kdump_attr_value val;
    ...;
};

typedef struct _tag_kdump_ctx kdump_ctx;

typedef kdump_status kdump_get_symbol_val_fn(kdump_ctx *ctx, const char *name, kdump_addr_t *val);
typedef int kdump_enum_attr_fn(void *data, const char *key, const struct kdump_attr *valp);

kdump_ctx *kdump_alloc_ctx(void);
kdump_status kdump_init_ctx(kdump_ctx *ctx);
void kdump_free(kdump_ctx *ctx);
const char *kdump_err_str(kdump_ctx *ctx);
kdump_status kdump_set_fd(kdump_ctx *ctx, int fd);

void kdump_set_priv(kdump_ctx *ctx, void *data);
void *kdump_get_priv(kdump_ctx *ctx);
kdump_get_symbol_val_fn *kdump_cb_get_symbol_val(kdump_ctx *ctx, kdump_get_symbol_val_fn *cb);

kdump_status kdump_readp(kdump_ctx *ctx, int as, kdump_addr_t addr, void *buffer, size_t *plength);
kdump_status kdump_get_attr(kdump_ctx *ctx, const char *key, struct kdump_attr *valp);
int kdump_enum_attr_val(kdump_ctx *ctx, const struct kdump_attr *attr, kdump_enum_attr_fn *cb, void *cb_data);
kdump_status kdump_vtop_init(kdump_ctx *ctx);

extern "Python" kdump_status _kdumpfile_get_symbol_val(kdump_ctx *, const char *, kdump_addr_t *);
extern "Python" int _kdumpfile_enum_attr(void *, const char *, const struct kdump_attr *);
""")

if __name__ == "__main__":
    ffibuilder.compile(verbose=True)
